from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
import uuid

from flask import current_app
from sqlalchemy.orm import selectinload

from marketplace import db
from marketplace.data.core.vendor import Vendor
from marketplace.data.orders.order import Order, OrderItem
from marketplace.data.orders.vendor_order import VendorOrder, VendorOrderItem
from marketplace.data.orders import order_status as status
from marketplace.business.cart.cart_manager import CartManager
from marketplace.business.inventory.inventory_manager import InventoryManager
from marketplace.logger import get_logger

logger = get_logger("marketplace.business.orders")

REQUIRED_CUSTOMER_FIELDS = ('name', 'email', 'address', 'city')
PAYMENT_METHODS = ('cod', 'card', 'bank_transfer', 'wallet')

# Statuses an order line can still leave
_OPEN_LINE_STATUSES = (status.PLACED, status.ACCEPTED, status.PROCESSING, status.SHIPPED)


def generate_order_number(now=None):
    now = now or datetime.utcnow()
    return f"ORD-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def derive_order_status(line_statuses):
    """
    Collapse per-line statuses into the parent order status.

    Cancelled lines are ignored unless every line is cancelled; the order
    is delivered once every remaining line is delivered.
    """
    line_statuses = [s or status.PLACED for s in line_statuses]
    if not line_statuses:
        return status.PLACED
    live = [s for s in line_statuses if s not in status.CANCELLED_STATUSES]
    if not live:
        if all(s in status.CUSTOMER_CANCELLED_STATUSES for s in line_statuses):
            return status.CANCELLED_BY_CUSTOMER
        return status.CANCELLED
    if all(s == status.DELIVERED for s in live):
        return status.DELIVERED
    if any(s in (status.SHIPPED, status.DELIVERED) for s in live):
        return status.SHIPPED
    if any(s in (status.ACCEPTED, status.PROCESSING) for s in live):
        return status.PROCESSING
    return status.PLACED


class OrderManager:
    """
    Checkout and order status changes.

    Checkout reserves stock for every line and splits vendor lines into one
    VendorOrder per vendor; the caller commits once so either everything is
    written or nothing is.
    """

    def __init__(self, user_id: int | None = None):
        self.user_id = user_id
        self.inventory_manager = InventoryManager(user_id)

    # Checkout

    @staticmethod
    def _validate_customer(data: dict) -> dict:
        missing = [field for field in REQUIRED_CUSTOMER_FIELDS if not (data.get(field) or '').strip()]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        if '@' not in data['email']:
            raise ValueError('A valid email address is required')
        payment_method = data.get('payment_method') or 'cod'
        if payment_method not in PAYMENT_METHODS:
            raise ValueError(f'Unsupported payment method: {payment_method}')
        return {
            'name': data['name'].strip(),
            'email': data['email'].strip().lower(),
            'phone': (data.get('phone') or '').strip() or None,
            'address': data['address'].strip(),
            'city': data['city'].strip(),
            'payment_method': payment_method,
        }

    def checkout(self, data: dict) -> Order:
        """
        Turn the user's cart into an order.

        Raises:
            ValueError: empty cart, missing customer details or unavailable product
            InsufficientStockError: a line exceeds what can be reserved
        """
        customer = self._validate_customer(data or {})
        cart_manager = CartManager(self.user_id)
        cart = cart_manager.get_or_create_cart()
        if not cart.items:
            raise ValueError('Cart is empty')

        order = Order(
            order_number=generate_order_number(),
            user_id=self.user_id,
            customer_name=customer['name'],
            status=status.PLACED,
            created_by_id=self.user_id,
            **customer,
        )
        db.session.add(order)

        vendor_lines = OrderedDict()
        for cart_item in cart.items:
            product = cart_item.product
            if product is None or not product.is_active:
                title = (cart_item.product_data or {}).get('title', 'Product')
                raise ValueError(f"{title} is no longer available")

            self.inventory_manager.reserve_for_order(product, cart_item.quantity, order.order_number)
            line = OrderItem(
                product_id=product.id,
                vendor_id=product.vendor_id,
                assigned_vendor_id=product.vendor_id,
                handled_by='vendor' if product.vendor_id else 'admin',
                title=product.title,
                price=product.price,
                quantity=cart_item.quantity,
                shipping=product.shipping or 0,
                status=status.PLACED,
            )
            order.items.append(line)
            if product.vendor_id is not None:
                vendor_lines.setdefault(product.vendor_id, []).append(line)

        subtotal = sum(line.item_total for line in order.items)
        order.shipping_cost = sum(line.shipping for line in order.items)
        order.total_amount = round(subtotal + order.shipping_cost, 2)
        db.session.flush()

        default_rate = current_app.config.get('DEFAULT_COMMISSION_RATE', 20)
        for index, (vendor_id, lines) in enumerate(vendor_lines.items(), start=1):
            self._create_vendor_order(order, index, db.session.get(Vendor, vendor_id), lines, default_rate)

        cart_manager.clear()
        logger.info(f"Order {order.order_number} placed by user {self.user_id}: "
                    f"{len(order.items)} lines, {len(vendor_lines)} vendor orders, total {order.total_amount}")
        return order

    def _create_vendor_order(self, order, index, vendor, lines, default_rate) -> VendorOrder:
        total = round(sum(line.item_total for line in lines), 2)
        vendor_order = VendorOrder(
            parent_order=order,
            order_number=f"{order.order_number}-V{index}",
            vendor_id=vendor.id,
            customer_name=order.name,
            customer_email=order.email,
            customer_phone=order.phone,
            customer_address=order.address,
            customer_city=order.city,
            total_amount=total,
            commission_amount=round(total * vendor.effective_commission_rate(default_rate), 2),
            status=status.PLACED,
            created_by_id=self.user_id,
        )
        for line in lines:
            vendor_order.items.append(VendorOrderItem(
                product_id=line.product_id,
                title=line.title,
                price=line.price,
                quantity=line.quantity,
                item_total=line.item_total,
            ))
        db.session.add(vendor_order)
        return vendor_order

    # Status changes

    def _settle_lines(self, lines, new_status, order_number, reason):
        """Confirm or release stock for lines leaving an open status."""
        for line in lines:
            if (line.status or status.PLACED) not in _OPEN_LINE_STATUSES or line.product is None:
                continue
            if new_status == status.DELIVERED:
                self.inventory_manager.confirm_sale(line.product, line.quantity, order_number)
            elif new_status in status.CANCELLED_STATUSES:
                self.inventory_manager.release_for_order(line.product, line.quantity, order_number, reason)

    @staticmethod
    def _sync_parent(order: Order) -> None:
        order.status = derive_order_status([line.status for line in order.items])
        if order.status == status.DELIVERED and order.delivered_at is None:
            order.delivered_at = datetime.utcnow()

    def update_vendor_order_status(self, vendor_order: VendorOrder, new_status: str,
                                   cancelled_by: str = 'vendor') -> VendorOrder:
        """
        Move a vendor order along its workflow.

        Delivering confirms the reserved stock as sold; cancelling or
        rejecting releases it. The matching lines on the parent order follow.
        """
        if new_status not in status.VENDOR_ORDER_STATUSES:
            raise ValueError(f'Invalid status: {new_status}')
        if not status.can_transition(vendor_order.status, new_status):
            raise ValueError(f"Cannot change status from {vendor_order.status} to {new_status}")

        order = vendor_order.parent_order
        lines = [line for line in order.items if line.belongs_to_vendor(vendor_order.vendor_id)] \
            if order is not None else []
        self._settle_lines(lines, new_status, vendor_order.order_number,
                           f"Vendor order {vendor_order.order_number} {new_status}")

        previous = vendor_order.status
        vendor_order.status = new_status
        vendor_order.updated_by_id = self.user_id
        if new_status == status.DELIVERED:
            vendor_order.delivered_at = datetime.utcnow()
        if new_status in status.CANCELLED_STATUSES:
            vendor_order.cancelled_by = cancelled_by

        for line in lines:
            line.status = new_status
        if order is not None:
            self._sync_parent(order)

        logger.info(f"Vendor order {vendor_order.order_number}: {previous} -> {new_status} by user {self.user_id}")
        return vendor_order

    def update_order_status(self, order: Order, new_status: str) -> Order:
        """Admin status change; applies to the admin-handled lines of the order."""
        if new_status not in status.ORDER_STATUSES:
            raise ValueError(f'Invalid status: {new_status}')
        lines = [line for line in order.items if line.handled_by == 'admin']
        if not lines:
            raise ValueError('Order has no admin-handled items; vendors manage its status')
        if all((line.status or status.PLACED) not in _OPEN_LINE_STATUSES for line in lines):
            raise ValueError(f"Order {order.order_number} is already {order.status}")
        for line in lines:
            current = line.status or status.PLACED
            if current in _OPEN_LINE_STATUSES and not status.can_admin_transition(current, new_status):
                raise ValueError(f"Cannot change status from {current} to {new_status}")

        self._settle_lines(lines, new_status, order.order_number, f"Order {order.order_number} {new_status}")
        for line in lines:
            if (line.status or status.PLACED) in _OPEN_LINE_STATUSES:
                line.status = new_status
        if new_status in status.CANCELLED_STATUSES:
            order.cancelled_by = 'admin'
        order.updated_by_id = self.user_id
        self._sync_parent(order)
        logger.info(f"Order {order.order_number} admin lines set to {new_status} by user {self.user_id}")
        return order

    def cancel_by_customer(self, order: Order) -> Order:
        """Cancel every open line; not allowed once anything has shipped."""
        if order.status in status.CANCELLED_STATUSES:
            raise ValueError('Order is already cancelled')
        if any(line.status in (status.SHIPPED, status.DELIVERED) for line in order.items):
            raise ValueError('Order can no longer be cancelled')

        reason = f"Order {order.order_number} cancelled by customer"
        self._settle_lines(order.items, status.CANCELLED_BY_CUSTOMER, order.order_number, reason)
        for line in order.items:
            if (line.status or status.PLACED) in _OPEN_LINE_STATUSES:
                line.status = status.CANCELLED_BY_CUSTOMER
        for vendor_order in order.vendor_orders:
            if vendor_order.status not in status.CANCELLED_STATUSES:
                vendor_order.status = status.CANCELLED_BY_CUSTOMER
                vendor_order.cancelled_by = 'customer'
        order.cancelled_by = 'customer'
        self._sync_parent(order)
        logger.info(f"Order {order.order_number} cancelled by customer {self.user_id}")
        return order

    # Lookups

    @staticmethod
    def list_for_user(user_id: int, page: int = 1, limit: int = 20):
        return (Order.query.options(selectinload(Order.items))
                .filter_by(user_id=user_id)
                .order_by(Order.created_at.desc(), Order.id.desc())
                .paginate(page=page, per_page=limit, error_out=False))

    @staticmethod
    def get_for_user(identifier, user_id: int) -> Order | None:
        query = Order.query.filter_by(user_id=user_id)
        if str(identifier).isdigit():
            return query.filter_by(id=int(identifier)).first()
        return query.filter_by(order_number=str(identifier)).first()

    @staticmethod
    def vendor_orders_query(vendor_id: int):
        return VendorOrder.query.filter(db.or_(
            VendorOrder.vendor_id == vendor_id,
            VendorOrder.legacy_vendor_id == vendor_id,
        ))

    @staticmethod
    def list_for_vendor(vendor_id: int, order_status: str | None = None, page: int = 1, limit: int = 20):
        query = OrderManager.vendor_orders_query(vendor_id).options(selectinload(VendorOrder.items))
        if order_status:
            query = query.filter(VendorOrder.status == order_status)
        return (query.order_by(VendorOrder.created_at.desc(), VendorOrder.id.desc())
                .paginate(page=page, per_page=limit, error_out=False))

    @staticmethod
    def get_for_vendor(vendor_order_id: int, vendor_id: int) -> VendorOrder | None:
        return OrderManager.vendor_orders_query(vendor_id).filter(VendorOrder.id == vendor_order_id).first()
