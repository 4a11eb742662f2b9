from marketplace import db
from marketplace.data.core.user_created_base import UserCreatedBase
from marketplace.business.core.data_insertion_mixin import DataInsertionMixin


class Order(UserCreatedBase):
    """
    Customer order as placed at checkout.

    Each line records the vendor that sells it (``vendor_id``) and, for
    admin-listed products fulfilled by a vendor, the ``assigned_vendor_id``.
    """
    __tablename__ = 'orders'

    order_number = db.Column(db.String(40), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    payment_method = db.Column(db.String(30), default='cod')
    status = db.Column(db.String(30), nullable=False, default='placed', index=True)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    shipping_cost = db.Column(db.Float, nullable=False, default=0.0)
    customer_name = db.Column(db.String(120))
    delivered_at = db.Column(db.DateTime)
    cancelled_by = db.Column(db.String(20))

    user = db.relationship('User', foreign_keys=[user_id])
    items = db.relationship('OrderItem', back_populates='order', cascade='all, delete-orphan',
                            order_by='OrderItem.id')
    vendor_orders = db.relationship('VendorOrder', back_populates='parent_order')

    def to_dict(self, include_audit_fields=True, exclude=None):
        data = super().to_dict(include_audit_fields=include_audit_fields, exclude=exclude)
        data['items'] = [item.to_dict() for item in self.items]
        data['vendor_orders'] = [vo.order_number for vo in self.vendor_orders]
        return data

    def __repr__(self):
        return f'<Order {self.order_number} {self.status}>'


class OrderItem(DataInsertionMixin, db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='SET NULL'), nullable=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=True, index=True)
    assigned_vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=True, index=True)
    handled_by = db.Column(db.String(10), nullable=False, default='admin')
    title = db.Column(db.String(200), nullable=False)
    price = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    shipping = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(30))

    order = db.relationship('Order', back_populates='items')
    product = db.relationship('Product')

    @property
    def item_total(self):
        return (self.price or 0) * (self.quantity or 0)

    def belongs_to_vendor(self, vendor_id):
        return vendor_id is not None and vendor_id in (self.vendor_id, self.assigned_vendor_id)
