#!/usr/bin/env python3
"""
Catalog Debug Data Insertion
Inserts categories and products through the catalog managers so vendor
products start with an inventory ledger.
"""

from marketplace import db
from marketplace.logger import get_logger

logger = get_logger("marketplace.debug.catalog")


def insert_catalog_debug_data(debug_data, admin_user_id):
    """
    Insert debug data for catalog module

    Raises:
        Exception: If insertion fails (fail-fast)
    """
    if not debug_data:
        logger.info("No catalog debug data to insert")
        return

    logger.info("Inserting catalog debug data...")
    try:
        if 'Categories' in debug_data:
            _insert_categories(debug_data['Categories'], admin_user_id)
        if 'Products' in debug_data:
            _insert_products(debug_data['Products'], admin_user_id)
        db.session.commit()
        logger.info("Successfully inserted catalog debug data")
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to insert catalog debug data: {e}")
        raise


def _insert_categories(categories_data, admin_user_id):
    """Parents must be listed before their children."""
    from marketplace.business.catalog.category_manager import CategoryManager
    from marketplace.data.catalog.category import Category

    manager = CategoryManager(admin_user_id)
    for category_data in categories_data:
        if Category.query.filter_by(name=category_data['name']).first():
            continue
        data = dict(category_data)
        parent_name = data.pop('parent', None)
        if parent_name:
            parent = Category.query.filter_by(name=parent_name).first()
            if parent is None:
                raise ValueError(f"Parent category '{parent_name}' not found for {data['name']}")
            data['parent_id'] = parent.id
        manager.create_category(data)


def _insert_products(products_data, admin_user_id):
    from marketplace.business.catalog.product_manager import ProductManager
    from marketplace.data.catalog.product import Product
    from marketplace.data.core.user import User
    from marketplace.data.core.vendor import Vendor

    for product_data in products_data:
        if product_data.get('sku') and Product.query.filter_by(sku=product_data['sku']).first():
            continue
        data = dict(product_data)
        vendor_name = data.pop('vendor', None)
        vendor_id = None
        user_id = admin_user_id
        if vendor_name:
            vendor = Vendor.query.filter_by(business_name=vendor_name).first()
            if vendor is None:
                raise ValueError(f"Vendor '{vendor_name}' not found for product {data['title']}")
            vendor_id = vendor.id
            owner = User.query.filter_by(vendor_id=vendor.id).first()
            user_id = owner.id if owner else admin_user_id
        product = ProductManager(user_id).create_product(data, vendor_id=vendor_id)
        logger.debug(f"Created product: {product.title} ({product.product_source})")
