#!/usr/bin/env python3
#USE VENV: source venv/bin/activate
"""
Maintenance commands for the marketplace database

Usage:
    python maintenance.py sync-inventory [--dry-run]
    python maintenance.py normalize-images [--dry-run]
    python maintenance.py rename-category "Fragnace" "Fragrance"
    python maintenance.py ensure-indexes
    python maintenance.py backfill-seo
    python maintenance.py purge-carts
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()

from marketplace import create_app
from marketplace.logger import get_logger

logger = get_logger("marketplace.maintenance")


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description='Marketplace maintenance commands')
    commands = parser.add_subparsers(dest='command', required=True)

    sync = commands.add_parser('sync-inventory', help='Create missing inventory rows for vendor products')
    sync.add_argument('--dry-run', action='store_true', help='Report without writing')

    images = commands.add_parser('normalize-images', help='Reduce product image references to filenames')
    images.add_argument('--dry-run', action='store_true', help='Report without writing')

    rename = commands.add_parser('rename-category', help='Rename a category and regenerate its slug')
    rename.add_argument('old_name')
    rename.add_argument('new_name')

    commands.add_parser('ensure-indexes', help='Create missing database indexes')
    commands.add_parser('backfill-seo', help='Fill missing slugs and meta fields')
    commands.add_parser('purge-carts', help='Delete expired carts')
    return parser.parse_args(argv)


def run(args):
    if args.command == 'sync-inventory':
        from marketplace.maintenance.inventory_sync import sync_inventory
        return sync_inventory(dry_run=args.dry_run)
    if args.command == 'normalize-images':
        from marketplace.maintenance.image_paths import normalize_image_paths
        return normalize_image_paths(dry_run=args.dry_run)
    if args.command == 'rename-category':
        from marketplace.maintenance.catalog_fixes import rename_category
        return rename_category(args.old_name, args.new_name)
    if args.command == 'ensure-indexes':
        from marketplace.maintenance.indexes import ensure_indexes
        return ensure_indexes()
    if args.command == 'backfill-seo':
        from marketplace.maintenance.catalog_fixes import backfill_seo
        return backfill_seo()
    if args.command == 'purge-carts':
        from marketplace.maintenance.carts import purge_expired_carts
        return purge_expired_carts()
    raise ValueError(f"Unknown command: {args.command}")


if __name__ == '__main__':
    args = parse_arguments()
    app = create_app()
    with app.app_context():
        try:
            result = run(args)
        except Exception as e:
            logger.error(f"Maintenance command '{args.command}' failed: {e}", exc_info=True)
            sys.exit(1)
    logger.info(f"Maintenance command '{args.command}' finished: {result}")
