"""
Inventory sync
Starts an inventory ledger for vendor products that have none and
re-mirrors ``Product.stock`` from the ledger for the ones that do.
"""

from marketplace import db
from marketplace.data.catalog.product import Product
from marketplace.business.inventory.inventory_manager import InventoryManager
from marketplace.logger import get_logger

logger = get_logger("marketplace.maintenance.inventory_sync")


def sync_inventory(user_id=None, dry_run=False):
    """
    Returns:
        dict: checked, created, resynced and skipped counts
    """
    manager = InventoryManager(user_id)
    summary = {'checked': 0, 'created': 0, 'resynced': 0, 'skipped': 0}

    for product in Product.query.filter(Product.vendor_id.isnot(None)).order_by(Product.id).all():
        summary['checked'] += 1
        inventory = manager.get_for_product(product)
        if inventory is None:
            logger.info(f"Creating inventory for product {product.id} '{product.title}' "
                        f"with {product.stock or 0} units")
            if not dry_run:
                manager.create_for_product(product)
            summary['created'] += 1
        elif product.stock != inventory.available_stock:
            logger.info(f"Product {product.id} stock {product.stock} != available "
                        f"{inventory.available_stock}; resyncing")
            if not dry_run:
                manager.sync_product_stock(inventory)
            summary['resynced'] += 1
        else:
            summary['skipped'] += 1

    if dry_run:
        db.session.rollback()
    else:
        db.session.commit()
    logger.info(f"Inventory sync finished: {summary}")
    return summary
