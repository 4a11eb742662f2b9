"""
Customer order routes: checkout, order history, cancellation; admin status updates
"""
from flask import Blueprint
from flask_login import login_required, current_user

from marketplace import db
from marketplace.auth import admin_required
from marketplace.data.orders.order import Order
from marketplace.business.orders.order_manager import OrderManager
from marketplace.presentation.routes.api.responses import (
    success, error, failure, json_body, page_args, pagination_meta,
)
from marketplace.utils.logging_sanitizer import sanitize_request_payload
from marketplace.logger import get_logger

logger = get_logger("marketplace.routes.orders")

bp = Blueprint('orders', __name__)


@bp.route('', methods=['POST'])
@login_required
def checkout():
    data = json_body()
    logger.debug(f"Checkout by {current_user.username}: {sanitize_request_payload(data)}")
    try:
        order = OrderManager(current_user.id).checkout(data)
        db.session.commit()
        return success(order.to_dict(), message='Order placed', status=201)
    except Exception as e:
        return failure(e, 'place order', logger)


@bp.route('', methods=['GET'])
@login_required
def my_orders():
    page, limit = page_args()
    pagination = OrderManager.list_for_user(current_user.id, page, limit)
    return success({
        'orders': [order.to_dict() for order in pagination.items],
        'pagination': pagination_meta(pagination),
    })


@bp.route('/<string:identifier>', methods=['GET'])
@login_required
def get_order(identifier):
    order = OrderManager.get_for_user(identifier, current_user.id)
    if order is None:
        return error('Order not found', 404)
    return success(order.to_dict())


@bp.route('/<string:identifier>/cancel', methods=['POST'])
@login_required
def cancel_order(identifier):
    try:
        order = OrderManager.get_for_user(identifier, current_user.id)
        if order is None:
            raise LookupError('Order not found')
        OrderManager(current_user.id).cancel_by_customer(order)
        db.session.commit()
        return success(order.to_dict(), message='Order cancelled')
    except Exception as e:
        return failure(e, 'cancel order', logger)


@bp.route('/<int:order_id>/status', methods=['PUT'])
@admin_required
def update_order_status(order_id):
    data = json_body()
    try:
        order = db.session.get(Order, order_id)
        if order is None:
            raise LookupError('Order not found')
        OrderManager(current_user.id).update_order_status(order, (data.get('status') or '').strip())
        db.session.commit()
        return success(order.to_dict(), message='Order status updated')
    except Exception as e:
        return failure(e, 'update order status', logger)
