#!/usr/bin/env python3
"""
Orders Debug Data Insertion
Places sample orders through the cart and checkout flow, then walks the
vendor orders through their statuses. ``legacy`` entries are written as
plain orders with no vendor split, the shape older orders have.
"""

from marketplace import db
from marketplace.logger import get_logger

logger = get_logger("marketplace.debug.orders")


def insert_orders_debug_data(debug_data, admin_user_id):
    """
    Insert debug data for orders module

    Raises:
        Exception: If insertion fails (fail-fast)
    """
    if not debug_data:
        logger.info("No orders debug data to insert")
        return

    logger.info("Inserting orders debug data...")
    try:
        for order_data in debug_data.get('Orders', []):
            if order_data.get('legacy'):
                _insert_legacy_order(order_data)
            else:
                _place_order(order_data, admin_user_id)
        db.session.commit()
        logger.info("Successfully inserted orders debug data")
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to insert orders debug data: {e}")
        raise


def _customer(username):
    from marketplace.data.core.user import User

    customer = User.query.filter_by(username=username).first()
    if customer is None:
        raise ValueError(f"Customer '{username}' not found")
    return customer


def _product(sku):
    from marketplace.data.catalog.product import Product

    product = Product.query.filter_by(sku=sku).first()
    if product is None:
        raise ValueError(f"Product with SKU '{sku}' not found")
    return product


def _place_order(order_data, admin_user_id):
    from marketplace.business.cart.cart_manager import CartManager
    from marketplace.business.orders.order_manager import OrderManager
    from marketplace.data.core.user import User

    customer = _customer(order_data['customer'])
    cart_manager = CartManager(customer.id)
    for item in order_data['items']:
        cart_manager.add_item(_product(item['sku']).id, item.get('quantity', 1))

    order = OrderManager(customer.id).checkout(order_data['shipping'])
    db.session.flush()

    if order_data.get('cancel'):
        OrderManager(customer.id).cancel_by_customer(order)
        return

    for vendor_order in order.vendor_orders:
        owner = User.query.filter_by(vendor_id=vendor_order.vendor_id).first()
        manager = OrderManager(owner.id if owner else admin_user_id)
        for new_status in order_data.get('vendor_statuses', []):
            manager.update_vendor_order_status(vendor_order, new_status)

    if any(line.handled_by == 'admin' for line in order.items):
        for new_status in order_data.get('admin_statuses', []):
            OrderManager(admin_user_id).update_order_status(order, new_status)
    logger.debug(f"Placed debug order {order.order_number} ({order.status})")


def _insert_legacy_order(order_data):
    from marketplace.business.orders.order_manager import generate_order_number
    from marketplace.data.orders.order import Order, OrderItem

    customer = _customer(order_data['customer'])
    shipping = order_data['shipping']
    order = Order(
        order_number=generate_order_number(),
        user_id=customer.id,
        name=shipping['name'],
        customer_name=shipping['name'],
        email=shipping['email'],
        address=shipping.get('address'),
        city=shipping.get('city'),
        payment_method=shipping.get('payment_method', 'cod'),
        status=order_data.get('status', 'placed'),
        created_by_id=customer.id,
    )
    for item in order_data['items']:
        product = _product(item['sku'])
        order.items.append(OrderItem(
            product_id=product.id,
            vendor_id=product.vendor_id,
            handled_by='vendor' if product.vendor_id else 'admin',
            title=product.title,
            price=product.price,
            quantity=item.get('quantity', 1),
            status=order.status,
        ))
    order.total_amount = round(sum(line.item_total for line in order.items), 2)
    db.session.add(order)
    logger.debug(f"Inserted legacy debug order {order.order_number}")
