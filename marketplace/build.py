#!/usr/bin/env python3
"""
Build orchestrator for the marketplace database
Creates tables, guarantees critical data and optionally loads debug data
"""

import json
import os
from pathlib import Path

from marketplace import create_app, db
from marketplace.logger import get_logger

logger = get_logger("marketplace.build")

CRITICAL_DATA_FILE = Path(__file__).parent / 'data' / 'core' / 'build_data_critical.json'


def load_critical_data():
    if not CRITICAL_DATA_FILE.exists():
        error_msg = f"Critical data file not found: {CRITICAL_DATA_FILE}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)
    with open(CRITICAL_DATA_FILE, 'r') as f:
        return json.load(f)


def _admin_user_data(user_data):
    """Overlay ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD from the environment."""
    data = dict(user_data)
    data['username'] = os.environ.get('ADMIN_USERNAME') or data.get('username')
    data['email'] = os.environ.get('ADMIN_EMAIL') or data.get('email')
    data['password'] = os.environ.get('ADMIN_PASSWORD')
    if not data['password']:
        raise RuntimeError("ADMIN_PASSWORD environment variable is required to create the admin user")
    return data


def verify_critical_data():
    """
    Verify that critical data is present in the database

    Returns:
        bool: True if an active admin user exists
    """
    from marketplace.data.core.user import User

    admin = User.query.filter_by(role='admin', is_active=True).first()
    if admin is None:
        logger.warning("No active admin user found")
        return False
    logger.info("Critical data verification passed")
    return True


def insert_critical_data():
    """
    Insert critical data that must always be present

    Loads build_data_critical.json. Called on every build regardless of flags.

    Raises:
        FileNotFoundError: If critical data file not found
        RuntimeError: If critical data insertion fails
    """
    from marketplace.data.core.user import User
    from marketplace.data.catalog.category import Category

    logger.info("Loading critical data from build_data_critical.json...")
    critical_data = load_critical_data()

    try:
        for category_data in critical_data.get('Core', {}).get('Categories', []):
            Category.find_or_create_from_dict(category_data, lookup_fields=['name'], commit=False)

        if not verify_critical_data():
            logger.warning("Critical data missing, inserting admin user...")
            for user_key, user_data in critical_data.get('Essential', {}).get('Users', {}).items():
                User.find_or_create_from_dict(_admin_user_data(user_data),
                                              lookup_fields=['username'], commit=False)
                logger.info(f"Inserted essential user: {user_key}")

        db.session.commit()
    except Exception as e:
        db.session.rollback()
        error_msg = f"Critical data insertion failed: {e}"
        logger.error(error_msg)
        raise RuntimeError(error_msg) from e

    if not verify_critical_data():
        error_msg = "Critical data insertion completed but verification failed"
        logger.error(error_msg)
        raise RuntimeError(error_msg)


def build_models():
    """Create every table registered on the metadata."""
    db.create_all()
    logger.info("All database tables created")


def build_database(enable_debug_data=True, app=None):
    """
    Build the database

    Args:
        enable_debug_data (bool): Whether to insert debug data after the critical data
        app (Flask, optional): Application to build against; a new one is created if omitted
    """
    app = app or create_app()

    with app.app_context():
        logger.info(f"Starting database build (debug data: {enable_debug_data})")
        build_models()

        logger.info("Verifying and inserting critical data (always required)...")
        try:
            insert_critical_data()
        except Exception as e:
            logger.error(f"Critical data insertion failed: {e}")
            logger.error("Application cannot continue without critical data. Stopping build.")
            raise

        if enable_debug_data:
            from marketplace.debug.debug_data_manager import insert_debug_data
            logger.info("Inserting debug data...")
            insert_debug_data(enabled=True)

        logger.info("Database build completed successfully")


if __name__ == '__main__':
    import sys

    build_database(enable_debug_data='--no-debug-data' not in sys.argv)
