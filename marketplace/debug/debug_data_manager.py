#!/usr/bin/env python3
"""
Debug Data Manager
Central controller for debug data insertion

Handles:
- Loading debug data JSON files
- Checking if data is already present
- Orchestrating module-specific insertion functions
- Following build order: core → catalog → orders
- Fail-fast error handling
"""

from pathlib import Path
import json
from marketplace import db
from marketplace.logger import get_logger

logger = get_logger("marketplace.debug_data_manager")

MODULES = ['core', 'catalog', 'orders']


def insert_debug_data(enabled=True, modules=None):
    """
    Insert debug data for the given modules

    Args:
        enabled (bool): Whether to insert debug data (default: True)
        modules (list, optional): Module names in build order (default: all)

    Returns:
        dict: Summary of inserted data

    Raises:
        Exception: If any debug data insertion fails (fail-fast)
    """
    if not enabled:
        logger.info("Debug data insertion is disabled")
        return {}

    from marketplace.data.core.user import User
    admin = User.query.filter_by(role='admin').first()
    if not admin:
        logger.error("Admin user not found - cannot insert debug data without critical data")
        raise RuntimeError("Admin user not found - critical data must be inserted first")

    summary = {}
    for module_name in modules or MODULES:
        try:
            debug_data = _load_debug_data_file(module_name)
            if not debug_data:
                logger.info(f"No debug data file found for {module_name}, skipping")
                summary[module_name] = {'status': 'skipped', 'reason': 'file_not_found'}
                continue

            if _check_debug_data_present(module_name, debug_data):
                logger.info(f"Debug data for {module_name} already present, skipping")
                summary[module_name] = {'status': 'skipped', 'reason': 'data_present'}
                continue

            logger.info(f"Inserting debug data for {module_name}...")
            _insert_module_debug_data(module_name, debug_data, admin.id)
            summary[module_name] = {'status': 'inserted'}
            logger.info(f"Successfully inserted debug data for {module_name}")

        except Exception as e:
            logger.error(f"Failed to insert debug data for {module_name}: {e}")
            db.session.rollback()
            raise

    logger.info("Debug data insertion completed successfully")
    return summary


def _load_debug_data_file(module_name):
    """
    Load debug data JSON file for a module

    Returns:
        dict: Debug data or None if file doesn't exist
    """
    debug_file = Path(__file__).parent / 'data' / f'{module_name}.json'
    if not debug_file.exists():
        return None

    try:
        with open(debug_file, 'r') as f:
            data = json.load(f)
        logger.debug(f"Loaded debug data file: {debug_file}")
        return data
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {debug_file}: {e}")
        raise


def _check_debug_data_present(module_name, debug_data):
    """True when the module's key records already exist."""
    if module_name == 'core':
        from marketplace.data.core.vendor import Vendor
        from marketplace.data.core.user import User
        for vendor_data in debug_data.get('Vendors', []):
            if Vendor.query.filter_by(business_name=vendor_data['business_name']).first():
                return True
        for user_data in debug_data.get('Users', []):
            if User.query.filter_by(username=user_data['username']).first():
                return True

    elif module_name == 'catalog':
        from marketplace.data.catalog.product import Product
        for product_data in debug_data.get('Products', []):
            if product_data.get('sku') and Product.query.filter_by(sku=product_data['sku']).first():
                return True

    elif module_name == 'orders':
        from marketplace.data.orders.order import Order
        from marketplace.data.core.user import User
        usernames = {order_data['customer'] for order_data in debug_data.get('Orders', [])}
        customers = User.query.filter(User.username.in_(usernames)).all() if usernames else []
        if customers and Order.query.filter(Order.user_id.in_([u.id for u in customers])).first():
            return True

    return False


def _insert_module_debug_data(module_name, debug_data, admin_user_id):
    """
    Dispatch to the module's insertion function

    Raises:
        ValueError: If the module is unknown
    """
    if module_name == 'core':
        from marketplace.debug.add_core_debugging_data import insert_core_debug_data
        insert_core_debug_data(debug_data, admin_user_id)
    elif module_name == 'catalog':
        from marketplace.debug.add_catalog_debugging_data import insert_catalog_debug_data
        insert_catalog_debug_data(debug_data, admin_user_id)
    elif module_name == 'orders':
        from marketplace.debug.add_orders_debugging_data import insert_orders_debug_data
        insert_orders_debug_data(debug_data, admin_user_id)
    else:
        raise ValueError(f"Unknown debug data module: {module_name}")
