"""
Catalog data repairs: category renames and SEO field backfill.
"""

from marketplace import db
from marketplace.data.catalog.category import Category
from marketplace.data.catalog.product import Product
from marketplace.business.catalog.category_manager import CategoryManager
from marketplace.business.seo.seo_utils import generate_slug
from marketplace.logger import get_logger

logger = get_logger("marketplace.maintenance.catalog_fixes")


def rename_category(old_name, new_name):
    """
    Fix a misspelled category name. A slug derived from the old name is
    regenerated from the new one; a hand-set slug is kept.

    Raises:
        ValueError: If another category already uses ``new_name``

    Returns:
        int: Number of categories renamed
    """
    new_name = new_name.strip()
    clash = Category.query.filter(db.func.lower(Category.name) == new_name.lower()).first()
    if clash is not None and clash.name.lower() != old_name.lower():
        raise ValueError(f"Category '{new_name}' already exists")

    renamed = Category.query.filter(db.func.lower(Category.name) == old_name.lower()).all()
    old_slugs = {category.id: category.slug for category in renamed}
    count = CategoryManager.rename(old_name, new_name)
    for category in renamed:
        if old_slugs[category.id] and old_slugs[category.id].startswith(generate_slug(old_name)):
            category.slug = None
            category.meta_title = None
    db.session.commit()
    logger.info(f"Renamed {count} categories from '{old_name}' to '{new_name}'")
    return count


def backfill_seo():
    """
    Fill in missing slugs and meta fields on products and categories.

    Returns:
        dict: Rows updated per model
    """
    summary = {}
    for model in (Category, Product):
        missing = model.query.filter(db.or_(
            model.slug.is_(None), model.slug == '',
            model.meta_title.is_(None), model.meta_title == '',
        )).all()
        reserved = set()
        for row in missing:
            if row.slug == '':
                row.slug = None
            row.apply_seo_defaults(db.session, reserved)
        summary[model.__tablename__] = len(missing)
    db.session.commit()
    logger.info(f"SEO backfill finished: {summary}")
    return summary
