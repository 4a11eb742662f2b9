from __future__ import annotations

from marketplace import db
from marketplace.data.catalog.product import Product
from marketplace.data.cart.cart import CartItem
from marketplace.data.orders.order import OrderItem
from marketplace.data.orders.vendor_order import VendorOrderItem
from marketplace.business.inventory.inventory_manager import InventoryManager
from marketplace.services.catalog.category_service import CategoryService
from marketplace.logger import get_logger

logger = get_logger("marketplace.business.catalog.product_manager")

EDITABLE_FIELDS = (
    'title', 'description', 'price', 'original_price', 'discount', 'image', 'images',
    'brand', 'tags', 'keywords', 'sku', 'vendor_sku', 'weight', 'shipping', 'dimensions',
    'is_active', 'is_visible', 'is_featured', 'low_stock_threshold',
    'slug', 'meta_title', 'meta_description', 'alt_text', 'seo_keywords', 'canonical_url',
)
CATEGORY_COLLECTIONS = ('categories', 'main_categories', 'sub_categories')


class ProductManager:
    """
    Product writes.

    A vendor-created product starts an inventory row in the same
    transaction; admin-created products are not inventory tracked.
    """

    def __init__(self, user_id: int | None = None):
        self.user_id = user_id
        self.inventory_manager = InventoryManager(user_id)

    @staticmethod
    def _validate(data: dict, partial: bool = False) -> None:
        if not partial or 'title' in data:
            title = (data.get('title') or '').strip()
            if not title:
                raise ValueError('Title is required')
            if len(title) > 200:
                raise ValueError('Title cannot be longer than 200 characters')
        if data.get('description') and len(data['description']) > 2000:
            raise ValueError('Description cannot be longer than 2000 characters')
        if not partial or 'price' in data:
            try:
                price = float(data.get('price'))
            except (TypeError, ValueError):
                raise ValueError('Price is required and must be a number')
            if price < 0:
                raise ValueError('Price cannot be negative')
        if 'stock' in data and data['stock'] is not None and int(data['stock']) < 0:
            raise ValueError('Stock cannot be negative')
        if 'discount' in data and data['discount'] is not None:
            if not 0 <= float(data['discount']) <= 100:
                raise ValueError('Discount must be between 0 and 100')

    @staticmethod
    def _resolve_categories(values) -> list:
        if values is None:
            return []
        if not isinstance(values, (list, tuple)):
            values = [values]
        categories = []
        for value in values:
            category = CategoryService.resolve_identifier(value)
            if category is None:
                raise ValueError(f'Category not found: {value}')
            if category not in categories:
                categories.append(category)
        return categories

    def _apply(self, product: Product, data: dict) -> None:
        for field in EDITABLE_FIELDS:
            if field in data:
                setattr(product, field, data[field])
        for collection in CATEGORY_COLLECTIONS:
            if collection in data:
                setattr(product, collection, self._resolve_categories(data[collection]))

    def create_product(self, data: dict, vendor_id: int | None = None) -> Product:
        self._validate(data)
        product = Product(
            vendor_id=vendor_id,
            stock=int(data.get('stock') or 0),
            created_by_id=self.user_id,
            updated_by_id=self.user_id,
        )
        self._apply(product, data)
        product.title = product.title.strip()
        product.price = float(product.price)
        db.session.add(product)
        db.session.flush()

        if vendor_id is not None:
            self.inventory_manager.create_for_product(product)
        logger.info(f"Product {product.id} '{product.title}' created by user {self.user_id} "
                    f"({product.product_source})")
        return product

    def update_product(self, product: Product, data: dict) -> Product:
        self._validate(data, partial=True)
        self._apply(product, data)
        product.updated_by_id = self.user_id

        if 'stock' in data and data['stock'] is not None:
            self.set_stock(product, int(data['stock']), reason='Product stock updated')
        return product

    def set_stock(self, product: Product, stock: int, reason: str = 'Stock set by administrator') -> Product:
        """Set an absolute stock level; tracked products go through their ledger."""
        if stock < 0:
            raise ValueError('Stock must be a non-negative number')
        inventory = self.inventory_manager.get_for_product(product)
        if inventory is None:
            product.stock = stock
            return product
        adjustment = stock - inventory.current_stock
        if adjustment:
            inventory.add_stock(adjustment, 'adjustment', reason, performed_by_id=self.user_id)
            self.inventory_manager.after_stock_change(inventory)
        return product

    def delete_product(self, product: Product) -> str:
        """
        Remove a product.

        Tracked products keep their ledger: they are deactivated and the
        inventory is pinned to ``discontinued``. Untracked products are
        deleted; cart and order lines keep their snapshots.

        Returns:
            str: 'discontinued' or 'deleted'
        """
        inventory = self.inventory_manager.get_for_product(product)
        if inventory is not None:
            product.is_active = False
            product.is_visible = False
            inventory.stock_status = 'discontinued'
            logger.info(f"Product {product.id} discontinued (inventory {inventory.id} retained)")
            return 'discontinued'

        for model in (CartItem, OrderItem, VendorOrderItem):
            model.query.filter_by(product_id=product.id).update(
                {'product_id': None}, synchronize_session='fetch')
        db.session.delete(product)
        logger.info(f"Product {product.id} deleted")
        return 'deleted'

    @staticmethod
    def record_view(product: Product) -> None:
        product.views = (product.views or 0) + 1
