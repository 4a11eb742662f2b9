"""
Index maintenance for databases created before an index was declared.
"""

from sqlalchemy import Index

from marketplace import db
from marketplace.logger import get_logger

logger = get_logger("marketplace.maintenance.indexes")

# Query paths that are not covered by column-level ``index=True``
QUERY_INDEXES = (
    ('ix_products_active_visible', 'products', ('is_active', 'is_visible')),
    ('ix_products_price', 'products', ('price',)),
    ('ix_products_created_at', 'products', ('created_at',)),
    ('ix_products_featured', 'products', ('is_featured',)),
    ('ix_orders_email', 'orders', ('email',)),
    ('ix_orders_created_at', 'orders', ('created_at',)),
    ('ix_vendor_orders_created_at', 'vendor_orders', ('created_at',)),
)


def _query_indexes():
    indexes = []
    for name, table_name, columns in QUERY_INDEXES:
        table = db.metadata.tables[table_name]
        existing = next((index for index in table.indexes if index.name == name), None)
        indexes.append(existing if existing is not None
                       else Index(name, *(table.c[column] for column in columns)))
    return indexes


def ensure_indexes():
    """
    Create every declared index plus ``QUERY_INDEXES`` where missing.

    Returns:
        list: Names of indexes checked
    """
    checked = []
    for table in db.metadata.sorted_tables:
        for index in table.indexes:
            index.create(bind=db.engine, checkfirst=True)
            checked.append(index.name)
    for index in _query_indexes():
        if index.name not in checked:
            index.create(bind=db.engine, checkfirst=True)
            checked.append(index.name)
    logger.info(f"Ensured {len(checked)} indexes")
    return checked
