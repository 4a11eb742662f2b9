"""
Inventory stock ledger: stock arithmetic, derived status and the
append-only movement log.
"""
import pytest

from marketplace.business.inventory.errors import (
    InventoryError, NegativeStockError, InsufficientStockError,
)
from marketplace.business.inventory.inventory_manager import InventoryManager
from marketplace.data.inventory.inventory import Inventory
from marketplace.data.inventory.stock_movement import StockMovement


def test_vendor_product_starts_inventory(db, vendor, vendor_user, make_product):
    product = make_product('Skillet', price=40.0, stock=25, vendor=vendor, user_id=vendor_user.id)
    inventory = product.inventory

    assert inventory is not None, "Vendor products are inventory tracked"
    assert inventory.current_stock == 25
    assert inventory.available_stock == 25
    assert inventory.stock_status == 'in_stock'
    assert inventory.cost_price == 28.0
    assert inventory.reorder_point == 20
    assert inventory.version == 1


def test_admin_product_has_no_inventory(db, make_product):
    product = make_product('House Brand Mug', stock=5)
    manager = InventoryManager()

    assert product.inventory is None
    assert manager.get_for_product(product) is None
    with pytest.raises(InventoryError):
        manager.create_for_product(product)


def test_adjust_stock_records_signed_movements(db, vendor, vendor_user, make_product):
    product = make_product(stock=20, vendor=vendor, user_id=vendor_user.id)
    inventory = product.inventory
    manager = InventoryManager(vendor_user.id)

    result = manager.adjust_stock(inventory, 5, 'Recount')
    db.session.commit()
    assert result == {'product_name': 'Widget', 'previous_stock': 20, 'new_stock': 25, 'adjustment': 5}

    manager.adjust_stock(inventory, -15, 'Damaged in storage', movement_type='damage')
    db.session.commit()

    movements = StockMovement.query.filter_by(inventory_id=inventory.id).order_by(StockMovement.id).all()
    assert [(m.movement_type, m.quantity) for m in movements] == [('adjustment', 5), ('damage', -15)]
    assert movements[0].performed_by_id == vendor_user.id
    assert inventory.current_stock == 10
    assert inventory.stock_status == 'low_stock'
    assert product.stock == 10, "Product stock mirrors the available stock"


def test_adjust_stock_rejects_zero_and_negative_result(db, vendor, vendor_user, make_product):
    inventory = make_product(stock=3, vendor=vendor, user_id=vendor_user.id).inventory
    manager = InventoryManager(vendor_user.id)

    with pytest.raises(ValueError):
        manager.adjust_stock(inventory, 0)
    with pytest.raises(ValueError):
        manager.adjust_stock(inventory, 'lots')
    with pytest.raises(NegativeStockError):
        manager.adjust_stock(inventory, -4)
    assert inventory.current_stock == 3
    assert inventory.stock_movements == []


def test_reserve_release_and_confirm(db, vendor, make_product):
    inventory = make_product(stock=10, vendor=vendor).inventory
    inventory.low_stock_threshold = 2

    inventory.reserve_stock(4, order_id='ORD-1')
    assert (inventory.current_stock, inventory.reserved_stock, inventory.available_stock) == (10, 4, 6)

    with pytest.raises(InsufficientStockError):
        inventory.reserve_stock(7)
    with pytest.raises(ValueError):
        inventory.reserve_stock(0)

    assert inventory.release_reserved_stock(10) == 4, "Release is capped at what is reserved"
    assert inventory.release_reserved_stock(1) == 0
    assert inventory.available_stock == 10

    inventory.reserve_stock(3, order_id='ORD-2')
    inventory.confirm_sale(3, order_id='ORD-2')
    assert (inventory.current_stock, inventory.reserved_stock, inventory.available_stock) == (7, 0, 7)
    with pytest.raises(InsufficientStockError):
        inventory.confirm_sale(1)

    db.session.commit()
    types = [m.movement_type for m in sorted(inventory.stock_movements, key=lambda m: m.id)]
    assert types == ['sale', 'adjustment', 'sale', 'sale']


def test_stock_status_thresholds_and_discontinued_pin(db, vendor, make_product):
    inventory = make_product(stock=11, vendor=vendor).inventory
    assert inventory.stock_status == 'in_stock'

    inventory.add_stock(-1, 'adjustment')
    assert inventory.stock_status == 'low_stock', "current <= low_stock_threshold (10)"

    inventory.add_stock(-10, 'adjustment')
    assert inventory.stock_status == 'out_of_stock'

    inventory.stock_status = 'discontinued'
    inventory.add_stock(50, 'purchase')
    db.session.commit()
    assert inventory.stock_status == 'discontinued', "Discontinued is never recomputed"

    with pytest.raises(ValueError):
        inventory.stock_status = 'sold_out'


def test_movements_are_append_only(db, vendor, make_product):
    inventory = make_product(stock=5, vendor=vendor).inventory
    movement = inventory.add_stock(5, 'purchase', 'Restock')
    db.session.commit()

    movement.reason = 'Edited after the fact'
    with pytest.raises(InventoryError):
        db.session.commit()
    db.session.rollback()

    db.session.delete(db.session.get(StockMovement, movement.id))
    with pytest.raises(InventoryError):
        db.session.commit()
    db.session.rollback()

    assert StockMovement.query.count() == 1


def test_derived_values(db, vendor, make_product):
    inventory = make_product(price=10.0, stock=30, vendor=vendor).inventory
    assert inventory.stock_value == 30 * 7.0
    assert inventory.days_of_stock_remaining is None

    inventory.average_cost_price = 5.0
    inventory.update_forecast(average_daily_sales=4)
    inventory.reserve_stock(3)
    assert inventory.stock_value == 150.0
    assert inventory.days_of_stock_remaining == 6, "floor(27 / 4)"


def test_last_stock_update_only_moves_with_stock(db, vendor, make_product):
    inventory = make_product(stock=5, vendor=vendor).inventory
    first = inventory.last_stock_update

    inventory.warehouse = 'Main Warehouse'
    db.session.commit()
    assert inventory.last_stock_update == first

    inventory.add_stock(1, 'purchase')
    db.session.commit()
    assert inventory.last_stock_update >= first
    assert inventory.version == 3


def test_each_ledger_operation_writes_the_row_once(db, vendor, make_product):
    inventory = make_product(stock=10, vendor=vendor).inventory
    assert inventory.version == 1

    inventory.reserve_stock(4, order_id='ORD-7')
    db.session.commit()
    assert inventory.version == 2

    inventory.confirm_sale(4, order_id='ORD-7')
    db.session.commit()
    assert inventory.version == 3

    inventory.add_stock(2, 'return')
    db.session.commit()
    assert inventory.version == 4
    assert (inventory.current_stock, inventory.reserved_stock) == (8, 0)
    assert inventory.last_movement_date is not None


def test_confirm_sale_rejects_non_positive_quantity(db, vendor, make_product):
    inventory = make_product(stock=10, vendor=vendor).inventory
    inventory.reserve_stock(2)

    for quantity in (0, -3):
        with pytest.raises(ValueError):
            inventory.confirm_sale(quantity)
    assert (inventory.current_stock, inventory.reserved_stock) == (10, 2)


def test_inventory_is_unique_per_product_and_vendor(db, vendor, make_product):
    product = make_product(vendor=vendor)
    db.session.add(Inventory(product=product, vendor_id=vendor.id))
    with pytest.raises(Exception):
        db.session.commit()
    db.session.rollback()
