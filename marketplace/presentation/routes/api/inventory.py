"""
Vendor inventory routes - stock levels, ledger, batches and alerts
"""
from flask import Blueprint, request
from flask_login import current_user

from marketplace import db
from marketplace.auth import vendor_required
from marketplace.business.inventory.inventory_manager import InventoryManager
from marketplace.services.inventory.inventory_service import InventoryService
from marketplace.presentation.routes.api.responses import (
    success, error, failure, json_body, page_args, pagination_meta, bool_arg,
)
from marketplace.utils.logging_sanitizer import sanitize_request_payload
from marketplace.logger import get_logger

logger = get_logger("marketplace.routes.inventory")

bp = Blueprint('inventory', __name__)


def _vendor_inventory(inventory_id):
    inventory = InventoryManager.get_for_vendor(inventory_id, current_user.vendor_id)
    if inventory is None:
        raise LookupError('Inventory item not found')
    return inventory


@bp.route('/overview', methods=['GET'])
@vendor_required
def overview():
    try:
        return success(InventoryService.get_overview(current_user.vendor_id))
    except Exception as e:
        return failure(e, 'get inventory overview', logger)


@bp.route('/items', methods=['GET'])
@vendor_required
def list_items():
    page, limit = page_args()
    pagination, applied = InventoryService.get_list_data(
        current_user.vendor_id,
        page=page,
        per_page=limit,
        search=request.args.get('search'),
        status=request.args.get('status'),
        sort_by=request.args.get('sort_by', 'last_stock_update'),
        sort_order=request.args.get('sort_order', 'desc'),
        low_stock=bool_arg('low_stock'),
        out_of_stock=bool_arg('out_of_stock'),
    )
    return success({
        'items': [item.to_dict(include_audit_fields=False) for item in pagination.items],
        'pagination': pagination_meta(pagination),
        'filters': applied,
    })


@bp.route('/items/<int:inventory_id>', methods=['GET'])
@vendor_required
def get_item(inventory_id):
    inventory = InventoryManager.get_for_vendor(inventory_id, current_user.vendor_id)
    if inventory is None:
        return error('Inventory item not found', 404)
    data = inventory.to_dict()
    data['batches'] = [batch.to_dict(include_audit_fields=False) for batch in inventory.batches]
    data['alerts'] = [alert.to_dict() for alert in inventory.pending_alerts]
    return success(data)


@bp.route('/items/<int:inventory_id>', methods=['PUT', 'PATCH'])
@vendor_required
def update_item(inventory_id):
    data = json_body()
    logger.debug(f"Inventory {inventory_id} update by {current_user.username}: {sanitize_request_payload(data)}")
    try:
        inventory = _vendor_inventory(inventory_id)
        InventoryManager(current_user.id).update_item(inventory, data)
        db.session.commit()
        return success(inventory.to_dict(), message='Inventory updated successfully')
    except Exception as e:
        return failure(e, 'update inventory item', logger)


@bp.route('/items/<int:inventory_id>/adjust', methods=['POST'])
@vendor_required
def adjust_stock(inventory_id):
    data = json_body()
    try:
        inventory = _vendor_inventory(inventory_id)
        result = InventoryManager(current_user.id).adjust_stock(
            inventory, data.get('adjustment'), data.get('reason'), data.get('type') or 'adjustment')
        db.session.commit()
        return success(result, message='Stock adjusted successfully')
    except Exception as e:
        return failure(e, 'adjust stock', logger)


@bp.route('/items/<int:inventory_id>/batches', methods=['POST'])
@vendor_required
def add_batch(inventory_id):
    try:
        inventory = _vendor_inventory(inventory_id)
        batch = InventoryManager(current_user.id).add_batch(inventory, json_body())
        db.session.commit()
        return success(batch.to_dict(include_audit_fields=False), message='Batch added successfully', status=201)
    except Exception as e:
        return failure(e, 'add batch', logger)


@bp.route('/items/<int:inventory_id>/movements', methods=['GET'])
@vendor_required
def stock_movements(inventory_id):
    inventory = InventoryManager.get_for_vendor(inventory_id, current_user.vendor_id)
    if inventory is None:
        return error('Inventory item not found', 404)
    page, limit = page_args(default_limit=50, max_limit=200)
    pagination = InventoryService.get_movements(inventory, page, limit)
    return success({
        'product_name': inventory.product.title if inventory.product else None,
        'product_sku': inventory.product.sku if inventory.product else None,
        'movements': [movement.to_dict(include_audit_fields=False) for movement in pagination.items],
        'pagination': pagination_meta(pagination),
    })


@bp.route('/alerts', methods=['GET'])
@vendor_required
def list_alerts():
    return success(InventoryService.get_alerts(current_user.vendor_id, acknowledged=bool_arg('acknowledged')))


@bp.route('/items/<int:inventory_id>/alerts/<int:alert_id>/acknowledge', methods=['POST'])
@vendor_required
def acknowledge_alert(inventory_id, alert_id):
    try:
        inventory = _vendor_inventory(inventory_id)
        alert = InventoryManager(current_user.id).acknowledge_alert(inventory, alert_id)
        if alert is None:
            raise LookupError('Alert not found')
        db.session.commit()
        return success(alert.to_dict(), message='Alert acknowledged successfully')
    except Exception as e:
        return failure(e, 'acknowledge alert', logger)


@bp.route('/analytics', methods=['GET'])
@vendor_required
def analytics():
    period = request.args.get('period', 30, type=int) or 30
    try:
        return success(InventoryService.get_analytics(current_user.vendor_id, period))
    except Exception as e:
        return failure(e, 'get inventory analytics', logger)


@bp.route('/bulk-update', methods=['POST'])
@vendor_required
def bulk_update():
    data = json_body()
    try:
        result = InventoryManager(current_user.id).bulk_update(current_user.vendor_id, data.get('updates'))
        db.session.commit()
        return success(result, message=f"Bulk update completed: {result['success_count']} successful, "
                                       f"{result['error_count']} failed")
    except Exception as e:
        return failure(e, 'bulk update stock', logger)
