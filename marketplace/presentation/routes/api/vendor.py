"""
Vendor portal routes - dashboard statistics, analytics, sales report and vendor orders
"""
from datetime import datetime

from flask import Blueprint, request
from flask_login import current_user

from marketplace import db
from marketplace.auth import vendor_required
from marketplace.business.analytics.vendor_analytics import VendorAnalytics, DEFAULT_TIME_RANGE
from marketplace.business.orders.order_manager import OrderManager
from marketplace.services.catalog.product_service import ProductService
from marketplace.presentation.routes.api.responses import (
    success, error, failure, json_body, page_args, pagination_meta,
)
from marketplace.logger import get_logger

logger = get_logger("marketplace.routes.vendor")

bp = Blueprint('vendor', __name__)


@bp.route('/dashboard/stats', methods=['GET'])
@vendor_required
def dashboard_stats():
    try:
        stats = VendorAnalytics(current_user.vendor).dashboard_stats()
        logger.debug(f"Dashboard stats for vendor {current_user.vendor_id}: {stats['orders']}")
        return success({'stats': stats, 'calculated_at': datetime.utcnow().isoformat()})
    except Exception as e:
        return failure(e, 'calculate dashboard statistics', logger)


@bp.route('/analytics/stats', methods=['GET'])
@vendor_required
def analytics_stats():
    time_range = request.args.get('timeRange') or request.args.get('time_range') or DEFAULT_TIME_RANGE
    try:
        analytics = VendorAnalytics(current_user.vendor).analytics_stats(time_range)
        return success({
            'analytics': analytics,
            'calculated_at': datetime.utcnow().isoformat(),
            'time_range': f"{analytics['period']['time_range']} days",
        })
    except Exception as e:
        return failure(e, 'calculate analytics statistics', logger)


@bp.route('/analytics/sales-report', methods=['GET'])
@vendor_required
def sales_report():
    try:
        report = VendorAnalytics(current_user.vendor).sales_report(
            time_range=request.args.get('timeRange') or request.args.get('time_range') or DEFAULT_TIME_RANGE,
            start_date=request.args.get('start_date'),
            end_date=request.args.get('end_date'),
            order_status=request.args.get('status'),
            category=request.args.get('category'),
        )
        return success(report)
    except Exception as e:
        return failure(e, 'build sales report', logger)


@bp.route('/products', methods=['GET'])
@vendor_required
def vendor_products():
    page, limit = page_args()
    pagination, applied = ProductService.get_list_data(
        page=page,
        limit=limit,
        search=request.args.get('search'),
        sort=request.args.get('sort'),
        vendor_id=current_user.vendor_id,
        include_hidden=True,
    )
    return success({
        'products': [product.to_dict(include_audit_fields=False) for product in pagination.items],
        'pagination': pagination_meta(pagination),
        'filters': applied,
    })


@bp.route('/orders', methods=['GET'])
@vendor_required
def vendor_orders():
    page, limit = page_args()
    pagination = OrderManager.list_for_vendor(current_user.vendor_id, request.args.get('status'), page, limit)
    return success({
        'orders': [vendor_order.to_dict() for vendor_order in pagination.items],
        'pagination': pagination_meta(pagination),
    })


@bp.route('/orders/<int:vendor_order_id>', methods=['GET'])
@vendor_required
def vendor_order_detail(vendor_order_id):
    vendor_order = OrderManager.get_for_vendor(vendor_order_id, current_user.vendor_id)
    if vendor_order is None:
        return error('Order not found', 404)
    return success(vendor_order.to_dict())


@bp.route('/orders/<int:vendor_order_id>/status', methods=['PUT'])
@vendor_required
def update_vendor_order_status(vendor_order_id):
    data = json_body()
    try:
        vendor_order = OrderManager.get_for_vendor(vendor_order_id, current_user.vendor_id)
        if vendor_order is None:
            raise LookupError('Order not found')
        OrderManager(current_user.id).update_vendor_order_status(vendor_order, (data.get('status') or '').strip())
        db.session.commit()
        return success(vendor_order.to_dict(), message='Order status updated')
    except Exception as e:
        return failure(e, 'update order status', logger)
