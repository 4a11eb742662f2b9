from datetime import datetime
from marketplace import db
from marketplace.business.core.data_insertion_mixin import DataInsertionMixin

BATCH_STATUSES = ('active', 'expired', 'damaged', 'returned')


class InventoryBatch(DataInsertionMixin, db.Model):
    __tablename__ = 'inventory_batches'
    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='ck_batch_quantity_non_negative'),
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey('inventories.id'), nullable=False, index=True)
    batch_number = db.Column(db.String(100), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    expiry_date = db.Column(db.DateTime, index=True)
    manufacturing_date = db.Column(db.DateTime)
    supplier = db.Column(db.String(200))
    cost_price = db.Column(db.Float)
    status = db.Column(db.String(20), nullable=False, default='active')
    received_at = db.Column(db.DateTime, default=datetime.utcnow)

    inventory = db.relationship('Inventory', back_populates='batches')

    def is_expired(self, now=None):
        now = now or datetime.utcnow()
        return self.status == 'active' and self.expiry_date is not None and self.expiry_date < now

    def __repr__(self):
        return f'<InventoryBatch {self.batch_number} qty={self.quantity}>'
