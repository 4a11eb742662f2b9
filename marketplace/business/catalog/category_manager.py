from __future__ import annotations

from marketplace import db
from marketplace.data.catalog.category import Category
from marketplace.logger import get_logger

logger = get_logger("marketplace.business.catalog.category_manager")

EDITABLE_FIELDS = ('name', 'description', 'is_active', 'slug', 'meta_title',
                   'meta_description', 'seo_keywords', 'canonical_url')


class CategoryManager:
    def __init__(self, user_id: int | None = None, created_by_type: str = 'admin'):
        self.user_id = user_id
        self.created_by_type = created_by_type

    @staticmethod
    def _name_taken(name: str, exclude_id: int | None = None) -> bool:
        query = Category.query.filter(db.func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def _resolve_parent(parent_id):
        if parent_id in (None, ''):
            return None
        parent = db.session.get(Category, int(parent_id))
        if parent is None:
            raise LookupError('Parent category not found')
        return parent

    def create_category(self, data: dict) -> Category:
        name = (data.get('name') or '').strip()
        if not name:
            raise ValueError('Category name is required')
        if self._name_taken(name):
            raise ValueError('Category already exists')

        category = Category(
            name=name,
            description=data.get('description'),
            parent=self._resolve_parent(data.get('parent_id')),
            is_active=data.get('is_active', True),
            created_by_id=self.user_id,
            created_by_type=self.created_by_type,
        )
        for field in ('slug', 'meta_title', 'meta_description', 'seo_keywords', 'canonical_url'):
            if data.get(field):
                setattr(category, field, data[field])
        db.session.add(category)
        db.session.flush()
        logger.info(f"Category '{name}' created by {self.created_by_type} {self.user_id}")
        return category

    def update_category(self, category: Category, data: dict) -> Category:
        if 'name' in data:
            name = (data.get('name') or '').strip()
            if not name:
                raise ValueError('Category name is required')
            if self._name_taken(name, exclude_id=category.id):
                raise ValueError('Category already exists')
            data = dict(data, name=name)
        for field in EDITABLE_FIELDS:
            if field in data:
                setattr(category, field, data[field])
        if 'parent_id' in data:
            parent = self._resolve_parent(data['parent_id'])
            if parent is not None and parent.id == category.id:
                raise ValueError('A category cannot be its own parent')
            category.parent = parent
        category.updated_by_id = self.user_id
        return category

    @staticmethod
    def rename(old_name: str, new_name: str) -> int:
        """Rename every category called ``old_name`` (case-insensitive). Returns rows changed."""
        rows = Category.query.filter(db.func.lower(Category.name) == old_name.lower()).all()
        for category in rows:
            category.name = new_name
        return len(rows)
