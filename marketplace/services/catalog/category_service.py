"""
Category Service
Read-only category lookups used by the catalog and category routes.
"""

from typing import List, Optional
from marketplace import db
from marketplace.data.catalog.category import Category


class CategoryService:
    """Category queries. Name lookups also accept URL-style names like ``home-decor``."""

    @staticmethod
    def resolve_by_name(name: Optional[str]) -> Optional[Category]:
        """
        Find a category by name: exact match, then case-insensitive, then
        partial with spaces/hyphens treated as wildcards.

        Args:
            name: Category name or URL-style variant

        Returns:
            Category or None
        """
        if not name:
            return None
        name = name.strip()

        category = Category.query.filter(Category.name == name).first()
        if category is None:
            category = Category.query.filter(Category.name.ilike(name)).first()
        if category is None:
            pattern = '%' + '%'.join(part for part in name.replace('-', ' ').split() if part) + '%'
            category = (Category.query
                        .filter(Category.name.ilike(pattern))
                        .order_by(db.func.length(Category.name))
                        .first())
        return category

    @staticmethod
    def resolve_identifier(identifier) -> Optional[Category]:
        """Accept an id, a slug or a name."""
        if isinstance(identifier, int) or (isinstance(identifier, str) and identifier.isdigit()):
            category = db.session.get(Category, int(identifier))
            if category is not None:
                return category
        category = Category.query.filter_by(slug=str(identifier)).first()
        return category or CategoryService.resolve_by_name(str(identifier))

    @staticmethod
    def list_categories(active_only: bool = True, parent_id: Optional[int] = None,
                        top_level_only: bool = False) -> List[Category]:
        query = Category.query
        if active_only:
            query = query.filter(Category.is_active.is_(True))
        if parent_id is not None:
            query = query.filter(Category.parent_id == parent_id)
        elif top_level_only:
            query = query.filter(Category.parent_id.is_(None))
        return query.order_by(Category.name).all()
