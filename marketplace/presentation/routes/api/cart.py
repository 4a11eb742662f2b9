"""
Shopping cart routes
"""
from flask import Blueprint
from flask_login import login_required, current_user

from marketplace import db
from marketplace.business.cart.cart_manager import CartManager
from marketplace.presentation.routes.api.responses import success, failure, json_body
from marketplace.logger import get_logger

logger = get_logger("marketplace.routes.cart")

bp = Blueprint('cart', __name__)


def _cart_response(cart, message=None):
    # Totals are recomputed on flush
    db.session.flush()
    data = cart.to_dict()
    db.session.commit()
    return success(data, message=message)


@bp.route('', methods=['GET'])
@login_required
def get_cart():
    try:
        return _cart_response(CartManager(current_user.id).get_cart())
    except Exception as e:
        return failure(e, 'load cart', logger)


@bp.route('/items', methods=['POST'])
@login_required
def add_to_cart():
    data = json_body()
    try:
        cart = CartManager(current_user.id).add_item(
            data.get('product_id'), data.get('quantity', 1), data.get('selected_size'))
        return _cart_response(cart, 'Item added to cart')
    except Exception as e:
        return failure(e, 'add item to cart', logger)


@bp.route('/items/<int:product_id>', methods=['PUT', 'PATCH'])
@login_required
def update_cart_item(product_id):
    data = json_body()
    try:
        cart = CartManager(current_user.id).update_item(product_id, data.get('quantity'))
        return _cart_response(cart, 'Cart updated')
    except Exception as e:
        return failure(e, 'update cart', logger)


@bp.route('/items/<int:product_id>', methods=['DELETE'])
@login_required
def remove_from_cart(product_id):
    try:
        cart = CartManager(current_user.id).remove_item(product_id)
        return _cart_response(cart, 'Item removed from cart')
    except Exception as e:
        return failure(e, 'remove item from cart', logger)


@bp.route('', methods=['DELETE'])
@login_required
def clear_cart():
    try:
        cart = CartManager(current_user.id).clear()
        return _cart_response(cart, 'Cart cleared')
    except Exception as e:
        return failure(e, 'clear cart', logger)
