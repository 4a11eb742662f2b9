from datetime import datetime
from sqlalchemy.orm import validates
from marketplace import db
from marketplace.business.core.data_insertion_mixin import DataInsertionMixin

ALERT_TYPES = ('low_stock', 'out_of_stock', 'expired_batch', 'reorder_needed')
ALERT_SEVERITIES = ('low', 'medium', 'high', 'critical')


class InventoryAlert(DataInsertionMixin, db.Model):
    __tablename__ = 'inventory_alerts'

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey('inventories.id'), nullable=False, index=True)
    alert_type = db.Column(db.String(20), nullable=False)
    message = db.Column(db.String(255), nullable=False)
    severity = db.Column(db.String(10), nullable=False, default='medium')
    acknowledged = db.Column(db.Boolean, nullable=False, default=False, index=True)
    acknowledged_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    acknowledged_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    inventory = db.relationship('Inventory', back_populates='alerts')

    @validates('alert_type')
    def validate_alert_type(self, key, value):
        if value not in ALERT_TYPES:
            raise ValueError(f"Unknown alert type: {value}")
        return value

    @validates('severity')
    def validate_severity(self, key, value):
        if value not in ALERT_SEVERITIES:
            raise ValueError(f"Unknown alert severity: {value}")
        return value

    def __repr__(self):
        return f'<InventoryAlert {self.alert_type} ack={self.acknowledged}>'
