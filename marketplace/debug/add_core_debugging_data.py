#!/usr/bin/env python3
"""
Core Debug Data Insertion
Inserts vendors and their owner accounts plus sample customers
"""

from marketplace import db
from marketplace.logger import get_logger

logger = get_logger("marketplace.debug.core")


def insert_core_debug_data(debug_data, admin_user_id):
    """
    Insert debug data for core module

    Raises:
        Exception: If insertion fails (fail-fast)
    """
    if not debug_data:
        logger.info("No core debug data to insert")
        return

    logger.info("Inserting core debug data...")
    try:
        if 'Vendors' in debug_data:
            _insert_vendors(debug_data['Vendors'])
        if 'Users' in debug_data:
            _insert_users(debug_data['Users'])
        db.session.commit()
        logger.info("Successfully inserted core debug data")
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to insert core debug data: {e}")
        raise


def _insert_vendors(vendors_data):
    from marketplace.data.core.vendor import Vendor

    for vendor_data in vendors_data:
        vendor, created = Vendor.find_or_create_from_dict(
            vendor_data, lookup_fields=['business_name'], commit=False)
        if created:
            logger.debug(f"Created vendor: {vendor.business_name}")


def _insert_users(users_data):
    """Vendor owners reference their vendor by business name."""
    from marketplace.data.core.user import User
    from marketplace.data.core.vendor import Vendor

    for user_data in users_data:
        data = dict(user_data)
        vendor_name = data.pop('vendor', None)
        if vendor_name:
            vendor = Vendor.query.filter_by(business_name=vendor_name).first()
            if vendor is None:
                raise ValueError(f"Vendor '{vendor_name}' not found for user {data['username']}")
            data['vendor_id'] = vendor.id
        user, created = User.find_or_create_from_dict(data, lookup_fields=['username'], commit=False)
        if created:
            logger.debug(f"Created user: {user.username} ({user.role})")
