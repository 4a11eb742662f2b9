from __future__ import annotations

from datetime import datetime
import uuid

from marketplace import db
from marketplace.data.inventory.inventory import Inventory
from marketplace.data.inventory.inventory_batch import InventoryBatch
from marketplace.data.inventory.inventory_alert import InventoryAlert
from marketplace.data.catalog.product import Product
from marketplace.business.inventory.errors import InsufficientStockError, InventoryError
from marketplace.logger import get_logger

logger = get_logger("marketplace.business.inventory.manager")

# Fields a vendor may set through a plain update. current_stock is handled separately.
UPDATABLE_FIELDS = (
    'low_stock_threshold', 'out_of_stock_threshold', 'max_stock_limit',
    'auto_reorder_enabled', 'reorder_point', 'reorder_quantity',
    'cost_price', 'average_cost_price', 'valuation_method',
    'warehouse', 'aisle', 'shelf', 'bin',
)

VENDOR_PRODUCT_DEFAULTS = {
    'low_stock_threshold': 10,
    'reorder_point': 20,
    'reorder_quantity': 50,
}
COST_PRICE_RATIO = 0.7


def _parse_date(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)


class InventoryManager:
    """
    Stock operations on vendor inventory rows.

    Every stock-affecting call re-runs the alert rules and mirrors the
    available quantity onto the product so catalog and cart checks see it.
    Nothing here commits; routes own the transaction.
    """

    def __init__(self, user_id: int | None = None):
        self.user_id = user_id

    # Lookups

    @staticmethod
    def get_for_vendor(inventory_id: int, vendor_id: int) -> Inventory | None:
        return Inventory.query.filter_by(id=inventory_id, vendor_id=vendor_id).first()

    @staticmethod
    def get_for_product(product: Product) -> Inventory | None:
        if product.vendor_id is None:
            return None
        return Inventory.query.filter_by(product_id=product.id, vendor_id=product.vendor_id).first()

    # Lifecycle

    def create_for_product(self, product: Product, initial_stock: int | None = None) -> Inventory:
        """Start tracking a vendor product. Admin products are never tracked."""
        if product.vendor_id is None:
            raise InventoryError("Admin products do not carry inventory tracking")

        stock = int(product.stock if initial_stock is None else initial_stock)
        inventory = Inventory(
            product=product,
            vendor_id=product.vendor_id,
            current_stock=stock,
            cost_price=round((product.price or 0) * COST_PRICE_RATIO, 2),
            created_by_id=self.user_id,
            **VENDOR_PRODUCT_DEFAULTS,
        )
        db.session.add(inventory)
        logger.info(f"Created inventory for product {product.id} (vendor {product.vendor_id}) with {stock} units")
        self.after_stock_change(inventory)
        return inventory

    def after_stock_change(self, inventory: Inventory) -> None:
        inventory.check_and_create_alerts()
        self.sync_product_stock(inventory)

    @staticmethod
    def sync_product_stock(inventory: Inventory) -> None:
        product = inventory.product
        if product is not None and product.vendor_id == inventory.vendor_id:
            product.stock = inventory.available_stock

    # Vendor operations

    def adjust_stock(self, inventory: Inventory, adjustment, reason=None,
                     movement_type='adjustment') -> dict:
        """
        Apply a signed manual adjustment.

        Raises:
            ValueError: zero/missing adjustment
            NegativeStockError: result below zero
        """
        try:
            adjustment = int(adjustment)
        except (TypeError, ValueError):
            raise ValueError("Adjustment amount is required and cannot be zero")
        if adjustment == 0:
            raise ValueError("Adjustment amount is required and cannot be zero")

        previous = inventory.current_stock
        inventory.add_stock(adjustment, movement_type, reason,
                            {'adjustment_id': uuid.uuid4().hex}, performed_by_id=self.user_id)
        self.after_stock_change(inventory)
        logger.info(f"Inventory {inventory.id}: stock {previous} -> {inventory.current_stock} ({adjustment:+d})")
        return {
            'product_name': inventory.product.title if inventory.product else None,
            'previous_stock': previous,
            'new_stock': inventory.current_stock,
            'adjustment': adjustment,
        }

    def update_item(self, inventory: Inventory, data: dict) -> Inventory:
        """Apply whitelisted field changes; a changed current_stock is logged as an adjustment."""
        for field in UPDATABLE_FIELDS:
            if field in data:
                setattr(inventory, field, data[field])

        if 'stock_status' in data and data['stock_status'] in ('discontinued', 'in_stock'):
            # Only pinning/unpinning discontinued is manual; other statuses are derived
            inventory.stock_status = data['stock_status']

        if 'current_stock' in data and data['current_stock'] is not None:
            old_stock = inventory.current_stock
            new_stock = int(data['current_stock'])
            if new_stock != old_stock:
                inventory.add_stock(new_stock - old_stock, 'adjustment', 'Manual stock adjustment',
                                    performed_by_id=self.user_id,
                                    notes=f"Stock updated from {old_stock} to {new_stock}")

        inventory.updated_by_id = self.user_id
        inventory.refresh_derived_fields()
        self.after_stock_change(inventory)
        return inventory

    def bulk_update(self, vendor_id: int, updates: list) -> dict:
        """
        Set absolute stock levels for several rows.

        Every update is validated before anything is changed, so a failed
        entry leaves the row untouched and the others still apply.
        """
        if not isinstance(updates, list) or not updates:
            raise ValueError("Updates array is required")

        successful, failed = [], []
        for update in updates:
            inventory_id = update.get('inventory_id') if isinstance(update, dict) else None
            try:
                inventory = self.get_for_vendor(inventory_id, vendor_id)
                if inventory is None:
                    raise LookupError('Inventory item not found')
                new_stock = int(update.get('new_stock'))
                if new_stock < 0:
                    raise ValueError('Stock cannot be negative')
                old_stock = inventory.current_stock
                adjustment = new_stock - old_stock
                if adjustment != 0:
                    inventory.add_stock(adjustment, 'adjustment',
                                        update.get('reason') or 'Bulk stock update',
                                        performed_by_id=self.user_id)
                    self.after_stock_change(inventory)
                successful.append({
                    'inventory_id': inventory_id,
                    'previous_stock': old_stock,
                    'new_stock': inventory.current_stock,
                    'adjustment': adjustment,
                })
            except (LookupError, ValueError, TypeError) as e:
                failed.append({'inventory_id': inventory_id, 'error': str(e)})

        logger.info(f"Bulk update for vendor {vendor_id}: {len(successful)} ok, {len(failed)} failed")
        return {
            'successful': successful,
            'failed': failed,
            'total_processed': len(updates),
            'success_count': len(successful),
            'error_count': len(failed),
        }

    def add_batch(self, inventory: Inventory, data: dict) -> InventoryBatch:
        batch_number = (data.get('batch_number') or '').strip()
        if not batch_number:
            raise ValueError("batch_number is required")
        quantity = int(data.get('quantity') or 0)
        if quantity < 0:
            raise ValueError("Batch quantity cannot be negative")

        batch = inventory.add_batch(
            batch_number=batch_number,
            quantity=quantity,
            expiry_date=_parse_date(data.get('expiry_date')),
            manufacturing_date=_parse_date(data.get('manufacturing_date')),
            supplier=data.get('supplier'),
            cost_price=data.get('cost_price'),
        )
        if quantity:
            inventory.add_stock(quantity, 'purchase', f"New batch added: {batch_number}",
                                {'batch_number': batch_number}, performed_by_id=self.user_id)
        self.after_stock_change(inventory)
        return batch

    def acknowledge_alert(self, inventory: Inventory, alert_id: int) -> InventoryAlert | None:
        alert = inventory.acknowledge_alert(alert_id, self.user_id)
        if alert is not None:
            logger.info(f"Alert {alert_id} on inventory {inventory.id} acknowledged by user {self.user_id}")
        return alert

    # Order-driven operations

    def reserve_for_order(self, product: Product, quantity: int, order_id) -> Inventory | None:
        """
        Reserve stock for an order line.

        Vendor products reserve against their inventory row; admin products
        decrement ``Product.stock`` directly.
        """
        inventory = self.get_for_product(product)
        if inventory is None:
            if quantity > (product.stock or 0):
                raise InsufficientStockError(f"Only {product.stock} items available for {product.title}")
            product.stock = product.stock - quantity
            return None
        inventory.reserve_stock(quantity, order_id, performed_by_id=self.user_id)
        self.after_stock_change(inventory)
        return inventory

    def confirm_sale(self, product: Product, quantity: int, order_id) -> None:
        inventory = self.get_for_product(product)
        if inventory is not None:
            inventory.confirm_sale(quantity, order_id, performed_by_id=self.user_id)
            self.after_stock_change(inventory)
        product.sales_count = (product.sales_count or 0) + quantity

    def release_for_order(self, product: Product, quantity: int, order_id,
                          reason='Stock reservation released') -> int:
        inventory = self.get_for_product(product)
        if inventory is None:
            product.stock = (product.stock or 0) + quantity
            return quantity
        released = inventory.release_reserved_stock(quantity, reason, {'order_id': order_id},
                                                    performed_by_id=self.user_id)
        self.after_stock_change(inventory)
        return released
