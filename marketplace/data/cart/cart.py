from datetime import datetime, timedelta

from flask import current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.orm import Session

from marketplace import db
from marketplace.business.core.data_insertion_mixin import DataInsertionMixin, serialize_value

DEFAULT_CART_EXPIRY_DAYS = 30


def _expiry_days():
    if has_app_context():
        return current_app.config.get('CART_EXPIRY_DAYS', DEFAULT_CART_EXPIRY_DAYS)
    return DEFAULT_CART_EXPIRY_DAYS


class Cart(DataInsertionMixin, db.Model):
    """
    One cart per user.

    ``total_items`` and ``total_amount`` are always recomputed from the lines
    when the cart or any of its lines is flushed.
    """
    __tablename__ = 'carts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    total_items = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    currency = db.Column(db.String(3), nullable=False, default='USD')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, index=True)

    user = db.relationship('User')
    items = db.relationship('CartItem', back_populates='cart', cascade='all, delete-orphan',
                            order_by='CartItem.id')

    def recalculate_totals(self):
        self.total_items = sum(item.quantity for item in self.items)
        self.total_amount = sum(item.price * item.quantity for item in self.items)
        self.updated_at = datetime.utcnow()
        self.expires_at = self.updated_at + timedelta(days=_expiry_days())

    def is_expired(self, now=None):
        return self.expires_at is not None and self.expires_at <= (now or datetime.utcnow())

    def find_item(self, product_id):
        for item in self.items:
            if item.product_id == product_id or item.product_data.get('id') == product_id:
                return item
        return None

    def to_dict(self, include_audit_fields=True, exclude=None):
        return {
            'items': [item.to_dict() for item in self.items],
            'total_items': self.total_items,
            'total_amount': round(self.total_amount or 0, 2),
            'currency': self.currency,
            'expires_at': serialize_value(self.expires_at),
        }

    def __repr__(self):
        return f'<Cart user={self.user_id} items={self.total_items}>'


class CartItem(DataInsertionMixin, db.Model):
    __tablename__ = 'cart_items'
    __table_args__ = (
        db.CheckConstraint('quantity >= 1', name='ck_cart_item_quantity_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey('carts.id', ondelete='CASCADE'), nullable=False, index=True)
    # Nulled when the product is deleted; product_data keeps the line usable
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='SET NULL'), nullable=True)
    product_data = db.Column(db.JSON, nullable=False, default=dict)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    selected_size = db.Column(db.String(50))
    price = db.Column(db.Float, nullable=False)
    added_at = db.Column(db.DateTime, default=datetime.utcnow)

    cart = db.relationship('Cart', back_populates='items')
    product = db.relationship('Product')

    def to_dict(self, include_audit_fields=True, exclude=None):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_data': self.product_data,
            'quantity': self.quantity,
            'selected_size': self.selected_size,
            'price': self.price,
            'added_at': serialize_value(self.added_at),
        }


@event.listens_for(Session, 'before_flush')
def recalculate_cart_totals(session, flush_context, instances):
    carts = set()
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        if isinstance(obj, Cart) and obj not in session.deleted:
            carts.add(obj)
        elif isinstance(obj, CartItem) and obj.cart is not None and obj.cart not in session.deleted:
            carts.add(obj.cart)
    for cart in carts:
        cart.recalculate_totals()
