from marketplace import db
from marketplace.data.core.user_created_base import UserCreatedBase
from marketplace.business.core.data_insertion_mixin import DataInsertionMixin


class VendorOrder(UserCreatedBase):
    """The slice of a customer order that one vendor fulfils."""
    __tablename__ = 'vendor_orders'
    __table_args__ = (
        db.Index('ix_vendor_orders_vendor_status', 'vendor_id', 'status'),
    )

    parent_order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=True, index=True)
    order_number = db.Column(db.String(50), unique=True, nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=True)
    # Vendor reference carried over from records imported before vendor_id existed
    legacy_vendor_id = db.Column(db.Integer, nullable=True, index=True)
    customer_name = db.Column(db.String(120))
    customer_email = db.Column(db.String(120))
    customer_phone = db.Column(db.String(30))
    customer_address = db.Column(db.String(255))
    customer_city = db.Column(db.String(100))
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    commission_amount = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(30), nullable=False, default='placed')
    cancelled_by = db.Column(db.String(20))
    delivered_at = db.Column(db.DateTime)

    parent_order = db.relationship('Order', back_populates='vendor_orders')
    vendor = db.relationship('Vendor')
    items = db.relationship('VendorOrderItem', back_populates='vendor_order',
                            cascade='all, delete-orphan', order_by='VendorOrderItem.id')

    def to_dict(self, include_audit_fields=True, exclude=None):
        data = super().to_dict(include_audit_fields=include_audit_fields, exclude=exclude)
        data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f'<VendorOrder {self.order_number} {self.status}>'


class VendorOrderItem(DataInsertionMixin, db.Model):
    __tablename__ = 'vendor_order_items'

    id = db.Column(db.Integer, primary_key=True)
    vendor_order_id = db.Column(db.Integer, db.ForeignKey('vendor_orders.id', ondelete='CASCADE'),
                                nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='SET NULL'), nullable=True)
    title = db.Column(db.String(200), nullable=False)
    price = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    item_total = db.Column(db.Float, nullable=False, default=0.0)

    vendor_order = db.relationship('VendorOrder', back_populates='items')
    product = db.relationship('Product')
