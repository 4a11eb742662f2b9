"""
Alert generation rules and de-duplication
"""
from datetime import datetime, timedelta

from marketplace.business.inventory.inventory_manager import InventoryManager
from marketplace.services.inventory.inventory_service import InventoryService


def _alert_types(inventory):
    return sorted(alert.alert_type for alert in inventory.pending_alerts)


def test_low_stock_alert_is_deduplicated_until_acknowledged(db, vendor, vendor_user, make_product):
    inventory = make_product(stock=8, vendor=vendor, user_id=vendor_user.id).inventory
    manager = InventoryManager(vendor_user.id)
    assert _alert_types(inventory) == ['low_stock']

    manager.adjust_stock(inventory, -1)
    db.session.commit()
    assert len(inventory.alerts) == 1, "An open alert of the same type is reused"

    alert = manager.acknowledge_alert(inventory, inventory.alerts[0].id)
    db.session.commit()
    assert alert.acknowledged is True
    assert alert.acknowledged_by_id == vendor_user.id
    assert alert.acknowledged_at is not None
    assert inventory.pending_alerts == []

    manager.adjust_stock(inventory, -1)
    db.session.commit()
    assert len(inventory.alerts) == 2
    assert _alert_types(inventory) == ['low_stock']


def test_out_of_stock_and_reorder_rules_are_independent(db, vendor, make_product):
    inventory = make_product(stock=30, vendor=vendor).inventory
    manager = InventoryManager()
    inventory.auto_reorder_enabled = True
    assert inventory.pending_alerts == []

    manager.adjust_stock(inventory, -12)
    assert _alert_types(inventory) == ['reorder_needed']

    manager.adjust_stock(inventory, -18)
    db.session.commit()
    assert _alert_types(inventory) == ['out_of_stock', 'reorder_needed']
    severities = {alert.alert_type: alert.severity for alert in inventory.alerts}
    assert severities['out_of_stock'] == 'high'
    assert severities['reorder_needed'] == 'medium'


def test_expired_batch_raises_alert(db, vendor, vendor_user, make_product):
    inventory = make_product(stock=50, vendor=vendor, user_id=vendor_user.id).inventory
    manager = InventoryManager(vendor_user.id)

    batch = manager.add_batch(inventory, {
        'batch_number': 'LOT-2024-01',
        'quantity': 10,
        'expiry_date': (datetime.utcnow() - timedelta(days=1)).isoformat(),
        'supplier': 'Foundry Co',
    })
    db.session.commit()

    assert batch.id is not None
    assert inventory.current_stock == 60, "Batch quantity is received as a purchase"
    assert inventory.stock_movements[-1].reference == {'batch_number': 'LOT-2024-01'}
    assert _alert_types(inventory) == ['expired_batch']


def test_service_lists_alerts_with_product_details(db, vendor, make_product):
    product = make_product('Glass Jar', stock=2, vendor=vendor, sku='JAR-1')
    alerts = InventoryService.get_alerts(vendor.id)

    assert len(alerts) == 1
    assert alerts[0]['alert_type'] == 'low_stock'
    assert alerts[0]['product_name'] == 'Glass Jar'
    assert alerts[0]['product_sku'] == 'JAR-1'
    assert alerts[0]['inventory_id'] == product.inventory.id
    assert InventoryService.get_alerts(vendor.id, acknowledged=True) == []
