"""
Product Service
Read-only catalog queries: listing, search, featured/trending and stock reports.
"""

from typing import Any, Dict, List, Optional, Tuple

from flask_sqlalchemy.pagination import Pagination
from sqlalchemy.orm import selectinload

from marketplace import db
from marketplace.data.catalog.category import Category
from marketplace.data.catalog.product import Product
from marketplace.services.catalog.category_service import CategoryService

SORT_OPTIONS = {
    'price-low': (Product.price.asc(),),
    'price-high': (Product.price.desc(),),
    'popular': (Product.sales_count.desc(), Product.views.desc()),
    'newest': (Product.created_at.desc(), Product.id.desc()),
    'oldest': (Product.created_at.asc(), Product.id.asc()),
}
DEFAULT_SORT = 'newest'
LIKE_ESCAPE = '\\'


def _in_category(category: Category):
    """Match products filed under ``category`` in any of the three collections."""
    return db.or_(
        Product.categories.any(Category.id == category.id),
        Product.main_categories.any(Category.id == category.id),
        Product.sub_categories.any(Category.id == category.id),
    )


def contains_pattern(term: str) -> str:
    """Wrap ``term`` for a substring LIKE, with its own wildcards escaped."""
    for char in (LIKE_ESCAPE, '%', '_'):
        term = term.replace(char, LIKE_ESCAPE + char)
    return f'%{term}%'


def _text_match(term: str, *columns):
    pattern = contains_pattern(term)
    return db.or_(*[column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns])


def _json_contains_text(column, term: str):
    return db.cast(column, db.String).ilike(contains_pattern(term), escape=LIKE_ESCAPE)


class ProductService:
    """
    Service for catalog presentation data.

    Provides methods for:
    - Filtered, sorted and paginated product listings
    - Keyword search
    - Featured, trending and per-category listings
    - Stock reports for administrators
    """

    @staticmethod
    def base_query(include_hidden: bool = False):
        query = Product.query.options(selectinload(Product.vendor))
        if not include_hidden:
            query = query.filter(Product.is_active.is_(True), Product.is_visible.is_(True))
        return query

    @staticmethod
    def get_list_data(
        page: int = 1,
        limit: int = 20,
        category: Optional[str] = None,
        sub_category: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: Optional[str] = None,
        vendor_id: Optional[int] = None,
        include_hidden: bool = False,
    ) -> Tuple[Optional[Pagination], Dict[str, Any]]:
        """
        Get paginated products with filters.

        Args:
            page: Page number (1-based)
            limit: Items per page
            category: Category name; matched against all three category collections
            sub_category: Sub-category name; matched against sub_categories and categories
            search: Case-insensitive text over title, description and keywords
            min_price: Inclusive lower price bound
            max_price: Inclusive upper price bound
            sort: One of price-low, price-high, popular, newest, oldest
            vendor_id: Restrict to one vendor's products
            include_hidden: Include inactive or hidden products

        Returns:
            Tuple of (pagination or None when the category does not exist, applied filters)
        """
        query = ProductService.base_query(include_hidden)
        applied = {}

        if category:
            category_row = CategoryService.resolve_by_name(category)
            if category_row is None:
                return None, {'category': category, 'category_found': False}
            query = query.filter(_in_category(category_row))
            applied['category'] = category_row.name

        if sub_category:
            sub_row = CategoryService.resolve_by_name(sub_category)
            if sub_row is not None:
                query = query.filter(db.or_(
                    Product.sub_categories.any(Category.id == sub_row.id),
                    Product.categories.any(Category.id == sub_row.id),
                ))
                applied['sub_category'] = sub_row.name

        if search:
            query = query.filter(db.or_(
                _text_match(search, Product.title, Product.description),
                _json_contains_text(Product.keywords, search),
            ))
            applied['search'] = search

        if min_price is not None:
            query = query.filter(Product.price >= min_price)
            applied['min_price'] = min_price
        if max_price is not None:
            query = query.filter(Product.price <= max_price)
            applied['max_price'] = max_price

        if vendor_id is not None:
            query = query.filter(Product.vendor_id == vendor_id)

        sort = sort if sort in SORT_OPTIONS else DEFAULT_SORT
        applied['sort'] = sort
        query = query.order_by(*SORT_OPTIONS[sort])

        return query.paginate(page=page, per_page=limit, error_out=False), applied

    @staticmethod
    def search(term: str, page: int = 1, limit: int = 20, category: Optional[str] = None,
               min_price: Optional[float] = None, max_price: Optional[float] = None,
               sort: Optional[str] = None) -> Pagination:
        """
        Keyword search over title, description, brand, keywords and tags.

        Raises:
            ValueError: if ``term`` is empty
        """
        if not term or not term.strip():
            raise ValueError('Search query is required')
        term = term.strip()

        query = ProductService.base_query().filter(db.or_(
            _text_match(term, Product.title, Product.description, Product.brand),
            _json_contains_text(Product.keywords, term),
            _json_contains_text(Product.tags, term),
        ))

        if category and category != 'all':
            category_row = CategoryService.resolve_by_name(category)
            if category_row is not None:
                query = query.filter(_in_category(category_row))

        if min_price is not None:
            query = query.filter(Product.price >= min_price)
        if max_price is not None:
            query = query.filter(Product.price <= max_price)

        sort = sort if sort in SORT_OPTIONS else DEFAULT_SORT
        return query.order_by(*SORT_OPTIONS[sort]).paginate(page=page, per_page=limit, error_out=False)

    @staticmethod
    def get_featured(limit: int = 8) -> List[Product]:
        return (ProductService.base_query()
                .filter(Product.is_featured.is_(True))
                .order_by(Product.created_at.desc())
                .limit(limit).all())

    @staticmethod
    def get_trending(limit: int = 8) -> List[Product]:
        return (ProductService.base_query()
                .order_by(Product.views.desc(), Product.sales_count.desc())
                .limit(limit).all())

    @staticmethod
    def get_by_identifier(identifier, include_hidden: bool = False) -> Optional[Product]:
        """Look up a product by numeric id or slug."""
        query = ProductService.base_query(include_hidden)
        if str(identifier).isdigit():
            product = query.filter(Product.id == int(identifier)).first()
            if product is not None:
                return product
        return query.filter(Product.slug == str(identifier)).first()

    @staticmethod
    def get_low_stock(threshold: int = 5) -> List[Product]:
        return (Product.query
                .filter(Product.is_active.is_(True), Product.stock <= threshold)
                .order_by(Product.stock.asc())
                .all())

    @staticmethod
    def get_stock_summary(low_stock_level: int = 5) -> Dict[str, Any]:
        active = Product.query.filter(Product.is_active.is_(True))
        total = active.count()
        out_of_stock = active.filter(Product.stock == 0).count()
        low_stock = active.filter(Product.stock > 0, Product.stock <= low_stock_level).count()
        in_stock = active.filter(Product.stock > low_stock_level).count()
        return {
            'total_products': total,
            'in_stock': in_stock,
            'low_stock': low_stock,
            'out_of_stock': out_of_stock,
            'stock_percentage': round(in_stock / total * 100) if total else 0,
        }

    @staticmethod
    def get_category_products(category: Category, page: int = 1, limit: int = 20) -> Pagination:
        return (ProductService.base_query()
                .filter(_in_category(category))
                .order_by(*SORT_OPTIONS[DEFAULT_SORT])
                .paginate(page=page, per_page=limit, error_out=False))
