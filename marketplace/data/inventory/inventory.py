from datetime import datetime
import math

from sqlalchemy import event, inspect
from sqlalchemy.orm import validates

from marketplace import db
from marketplace.data.core.user_created_base import UserCreatedBase
from marketplace.data.inventory.stock_movement import StockMovement
from marketplace.data.inventory.inventory_batch import InventoryBatch
from marketplace.data.inventory.inventory_alert import InventoryAlert
from marketplace.business.inventory.errors import NegativeStockError, InsufficientStockError

STOCK_STATUSES = ('in_stock', 'low_stock', 'out_of_stock', 'discontinued')
VALUATION_METHODS = ('fifo', 'lifo', 'average_cost', 'specific_identification')

DEFAULTS = {
    'current_stock': 0,
    'reserved_stock': 0,
    'available_stock': 0,
    'low_stock_threshold': 10,
    'out_of_stock_threshold': 0,
    'stock_status': 'in_stock',
    'auto_reorder_enabled': False,
    'reorder_point': 20,
    'reorder_quantity': 50,
    'cost_price': 0.0,
    'average_daily_sales': 0.0,
    'average_weekly_sales': 0.0,
    'average_monthly_sales': 0.0,
    'seasonality_factor': 1.0,
    'valuation_method': 'fifo',
}


class Inventory(UserCreatedBase):
    """
    Stock ledger for one product sold by one vendor.

    ``available_stock`` and ``stock_status`` are derived from the stock
    counters and thresholds. They are refreshed by every mutating method and
    again right before the row is written.
    """
    __tablename__ = 'inventories'
    __table_args__ = (
        db.UniqueConstraint('product_id', 'vendor_id', name='uq_inventory_product_vendor'),
        db.CheckConstraint('current_stock >= 0', name='ck_inventory_current_non_negative'),
        db.CheckConstraint('reserved_stock >= 0', name='ck_inventory_reserved_non_negative'),
        db.CheckConstraint('available_stock >= 0', name='ck_inventory_available_non_negative'),
    )

    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=False, index=True)

    current_stock = db.Column(db.Integer, nullable=False, default=0, index=True)
    reserved_stock = db.Column(db.Integer, nullable=False, default=0)
    available_stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    out_of_stock_threshold = db.Column(db.Integer, nullable=False, default=0)
    max_stock_limit = db.Column(db.Integer, nullable=True)
    stock_status = db.Column(db.String(20), nullable=False, default='in_stock', index=True)

    auto_reorder_enabled = db.Column(db.Boolean, nullable=False, default=False)
    reorder_point = db.Column(db.Integer, nullable=False, default=20)
    reorder_quantity = db.Column(db.Integer, nullable=False, default=50)

    cost_price = db.Column(db.Float, default=0.0)
    average_cost_price = db.Column(db.Float, nullable=True)
    valuation_method = db.Column(db.String(30), nullable=False, default='fifo')

    warehouse = db.Column(db.String(100))
    aisle = db.Column(db.String(20))
    shelf = db.Column(db.String(20))
    bin = db.Column(db.String(20))

    average_daily_sales = db.Column(db.Float, default=0.0)
    average_weekly_sales = db.Column(db.Float, default=0.0)
    average_monthly_sales = db.Column(db.Float, default=0.0)
    seasonality_factor = db.Column(db.Float, default=1.0)
    forecast_updated_at = db.Column(db.DateTime)

    last_stock_update = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    last_movement_date = db.Column(db.DateTime)

    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}

    product = db.relationship('Product', back_populates='inventory_records')
    vendor = db.relationship('Vendor')
    stock_movements = db.relationship('StockMovement', back_populates='inventory',
                                      order_by='StockMovement.timestamp')
    batches = db.relationship('InventoryBatch', back_populates='inventory',
                              cascade='all, delete-orphan', order_by='InventoryBatch.id')
    alerts = db.relationship('InventoryAlert', back_populates='inventory',
                             cascade='all, delete-orphan', order_by='InventoryAlert.created_at')

    def __init__(self, **kwargs):
        for key, value in DEFAULTS.items():
            kwargs.setdefault(key, value)
        super().__init__(**kwargs)
        self.refresh_derived_fields()

    @validates('stock_status')
    def validate_stock_status(self, key, value):
        if value not in STOCK_STATUSES:
            raise ValueError(f"Unknown stock status: {value}")
        return value

    @validates('valuation_method')
    def validate_valuation_method(self, key, value):
        if value not in VALUATION_METHODS:
            raise ValueError(f"Unknown valuation method: {value}")
        return value

    # Derived values

    @property
    def computed_available_stock(self):
        return max(0, (self.current_stock or 0) - (self.reserved_stock or 0))

    @property
    def computed_stock_status(self):
        current = self.current_stock or 0
        if current <= (self.out_of_stock_threshold or 0):
            return 'out_of_stock'
        if current <= (self.low_stock_threshold or 0):
            return 'low_stock'
        return 'in_stock'

    @property
    def stock_value(self):
        unit_cost = self.average_cost_price or self.cost_price or 0
        return (self.current_stock or 0) * unit_cost

    @property
    def days_of_stock_remaining(self):
        """Whole days of available stock at the forecast sales rate; None means unbounded."""
        if not self.average_daily_sales or self.average_daily_sales <= 0:
            return None
        return math.floor(self.computed_available_stock / self.average_daily_sales)

    def refresh_derived_fields(self):
        self.available_stock = self.computed_available_stock
        if self.stock_status != 'discontinued':
            self.stock_status = self.computed_stock_status

    def should_reorder(self):
        return bool(self.auto_reorder_enabled) and self.computed_available_stock <= (self.reorder_point or 0)

    # Ledger operations. These mutate the row in memory; the caller commits.

    def _record_movement(self, movement_type, quantity, reason=None, reference=None,
                         performed_by_id=None, notes=None):
        now = datetime.utcnow()
        movement = StockMovement(
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            reference=reference,
            performed_by_id=performed_by_id,
            notes=notes,
            timestamp=now,
        )
        # Loading the collection must not flush the half-updated row
        with db.session.no_autoflush:
            self.stock_movements.append(movement)
        self.last_movement_date = now
        return movement

    def add_stock(self, quantity, movement_type='purchase', reason=None, reference=None,
                  performed_by_id=None, notes=None):
        """
        Apply a signed quantity to current stock and log it.

        Raises:
            NegativeStockError: if the result would drop below zero
        """
        quantity = int(quantity)
        new_stock = (self.current_stock or 0) + quantity
        if new_stock < 0:
            raise NegativeStockError(
                f"Adjustment would result in negative stock ({self.current_stock} {quantity:+d})"
            )
        self.current_stock = new_stock
        movement = self._record_movement(movement_type, quantity, reason, reference,
                                         performed_by_id, notes)
        self.refresh_derived_fields()
        return movement

    def reserve_stock(self, quantity, order_id=None, performed_by_id=None):
        quantity = int(quantity)
        if quantity <= 0:
            raise ValueError("Reservation quantity must be greater than 0")
        if quantity > self.computed_available_stock:
            raise InsufficientStockError(
                f"Insufficient stock available for reservation "
                f"(requested {quantity}, available {self.computed_available_stock})"
            )
        self.reserved_stock = (self.reserved_stock or 0) + quantity
        movement = self._record_movement('sale', -quantity, 'Stock reserved for order',
                                         {'order_id': order_id}, performed_by_id)
        self.refresh_derived_fields()
        return movement

    def release_reserved_stock(self, quantity, reason='Stock reservation released',
                               reference=None, performed_by_id=None):
        """Release up to ``quantity`` reserved units; returns the amount released."""
        release_amount = min(int(quantity), self.reserved_stock or 0)
        if release_amount <= 0:
            return 0
        self.reserved_stock = (self.reserved_stock or 0) - release_amount
        self._record_movement('adjustment', release_amount, reason, reference, performed_by_id)
        self.refresh_derived_fields()
        return release_amount

    def confirm_sale(self, quantity, order_id=None, performed_by_id=None):
        quantity = int(quantity)
        if quantity <= 0:
            raise ValueError("Sale quantity must be greater than 0")
        if quantity > (self.reserved_stock or 0):
            raise InsufficientStockError("Cannot confirm sale: insufficient reserved stock")
        self.current_stock = (self.current_stock or 0) - quantity
        self.reserved_stock = (self.reserved_stock or 0) - quantity
        movement = self._record_movement('sale', -quantity, 'Sale confirmed',
                                         {'order_id': order_id}, performed_by_id)
        self.refresh_derived_fields()
        return movement

    def add_batch(self, batch_number, quantity=0, expiry_date=None, manufacturing_date=None,
                  supplier=None, cost_price=None):
        batch = InventoryBatch(
            batch_number=batch_number,
            quantity=int(quantity or 0),
            expiry_date=expiry_date,
            manufacturing_date=manufacturing_date,
            supplier=supplier,
            cost_price=cost_price,
            status='active',
        )
        self.batches.append(batch)
        return batch

    def update_forecast(self, average_daily_sales=None, average_weekly_sales=None,
                        average_monthly_sales=None, seasonality_factor=None):
        if average_daily_sales is not None:
            self.average_daily_sales = float(average_daily_sales)
        if average_weekly_sales is not None:
            self.average_weekly_sales = float(average_weekly_sales)
        if average_monthly_sales is not None:
            self.average_monthly_sales = float(average_monthly_sales)
        if seasonality_factor is not None:
            self.seasonality_factor = float(seasonality_factor)
        self.forecast_updated_at = datetime.utcnow()

    # Alerts

    def create_alert(self, alert_type, message, severity='medium'):
        """Add an alert unless one of the same type is still unacknowledged."""
        for alert in self.alerts:
            if alert.alert_type == alert_type and not alert.acknowledged:
                return alert
        alert = InventoryAlert(alert_type=alert_type, message=message, severity=severity,
                               created_at=datetime.utcnow())
        self.alerts.append(alert)
        return alert

    def acknowledge_alert(self, alert_id, user_id):
        for alert in self.alerts:
            if alert.id == alert_id:
                alert.acknowledged = True
                alert.acknowledged_by_id = user_id
                alert.acknowledged_at = datetime.utcnow()
                return alert
        return None

    def expired_batches(self, now=None):
        return [batch for batch in self.batches if batch.is_expired(now)]

    def check_and_create_alerts(self, now=None):
        """Evaluate every alert rule independently; returns the alerts now open for them."""
        self.refresh_derived_fields()
        raised = []

        if self.stock_status == 'low_stock':
            raised.append(self.create_alert(
                'low_stock', f"Stock is running low: {self.current_stock} units remaining", 'medium'))

        if self.stock_status == 'out_of_stock':
            raised.append(self.create_alert('out_of_stock', "Product is out of stock", 'high'))

        if self.should_reorder():
            raised.append(self.create_alert(
                'reorder_needed',
                f"Reorder needed: Stock ({self.available_stock}) below reorder point ({self.reorder_point})",
                'medium'))

        expired = self.expired_batches(now)
        if expired:
            raised.append(self.create_alert(
                'expired_batch', f"{len(expired)} batch(es) have expired", 'high'))

        return raised

    @property
    def pending_alerts(self):
        return [alert for alert in self.alerts if not alert.acknowledged]

    def to_dict(self, include_audit_fields=True, exclude=None, include_product=True):
        data = super().to_dict(include_audit_fields=include_audit_fields, exclude=exclude)
        data.update({
            'stock_value': round(self.stock_value, 2),
            'days_of_stock_remaining': self.days_of_stock_remaining,
            'should_reorder': self.should_reorder(),
            'pending_alerts': len(self.pending_alerts),
        })
        if include_product and self.product is not None:
            data['product'] = {
                'id': self.product.id,
                'title': self.product.title,
                'sku': self.product.sku,
                'image': self.product.image,
                'price': self.product.price,
            }
        return data

    def __repr__(self):
        return f'<Inventory product={self.product_id} vendor={self.vendor_id} stock={self.current_stock}>'


def _stamp_derived_fields(target, touch_stock_update):
    target.refresh_derived_fields()
    if touch_stock_update:
        target.last_stock_update = datetime.utcnow()


@event.listens_for(Inventory, 'before_insert')
def _inventory_before_insert(mapper, connection, target):
    _stamp_derived_fields(target, True)


@event.listens_for(Inventory, 'before_update')
def _inventory_before_update(mapper, connection, target):
    state = inspect(target)
    stock_changed = (state.attrs.current_stock.history.has_changes()
                     or state.attrs.reserved_stock.history.has_changes())
    _stamp_derived_fields(target, stock_changed)
