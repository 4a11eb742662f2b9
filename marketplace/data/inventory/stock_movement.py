from datetime import datetime
from sqlalchemy import event
from sqlalchemy.orm import validates
from marketplace import db
from marketplace.business.core.data_insertion_mixin import DataInsertionMixin
from marketplace.business.inventory.errors import InventoryError

MOVEMENT_TYPES = ('purchase', 'sale', 'return', 'adjustment', 'transfer', 'damage', 'expiry')


class StockMovement(DataInsertionMixin, db.Model):
    """
    One signed change to an inventory row.

    Rows are append-only; updates and deletes are rejected at flush time.
    """
    __tablename__ = 'stock_movements'

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey('inventories.id'), nullable=False, index=True)
    movement_type = db.Column(db.String(20), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255))
    # {"order_id": ..., "purchase_order_id": ..., "transfer_id": ..., "batch_number": ...}
    reference = db.Column(db.JSON)
    performed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    notes = db.Column(db.String(500))

    inventory = db.relationship('Inventory', back_populates='stock_movements')
    performed_by = db.relationship('User', foreign_keys=[performed_by_id])

    @validates('movement_type')
    def validate_movement_type(self, key, value):
        if value not in MOVEMENT_TYPES:
            raise ValueError(f"Unknown movement type: {value}")
        return value

    def __repr__(self):
        return f'<StockMovement {self.movement_type} {self.quantity:+d} inv={self.inventory_id}>'


@event.listens_for(StockMovement, 'before_update')
def _reject_movement_update(mapper, connection, target):
    raise InventoryError("Stock movements are append-only and cannot be modified")


@event.listens_for(StockMovement, 'before_delete')
def _reject_movement_delete(mapper, connection, target):
    raise InventoryError("Stock movements are append-only and cannot be deleted")
