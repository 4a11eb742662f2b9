from datetime import datetime
from marketplace import db
from marketplace.business.core.data_insertion_mixin import DataInsertionMixin


class Vendor(DataInsertionMixin, db.Model):
    """A seller on the marketplace. Products with a vendor are vendor-managed."""

    __tablename__ = 'vendors'

    id = db.Column(db.Integer, primary_key=True)
    business_name = db.Column(db.String(200), nullable=False, unique=True)
    email = db.Column(db.String(120), nullable=False, unique=True)
    contact_phone = db.Column(db.String(30))
    # Percent retained by the marketplace; null falls back to DEFAULT_COMMISSION_RATE
    commission_rate = db.Column(db.Float, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    products = db.relationship('Product', back_populates='vendor', lazy='dynamic')

    def effective_commission_rate(self, default_rate):
        """Commission as a fraction (20 -> 0.20)."""
        rate = self.commission_rate if self.commission_rate is not None else default_rate
        return (rate or 0) / 100.0

    def __repr__(self):
        return f'<Vendor {self.business_name}>'
