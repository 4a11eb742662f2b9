from __future__ import annotations

from marketplace import db
from marketplace.data.cart.cart import Cart, CartItem
from marketplace.data.catalog.product import Product
from marketplace.business.inventory.errors import InsufficientStockError
from marketplace.logger import get_logger

logger = get_logger("marketplace.business.cart")

PLACEHOLDER_IMAGE = 'placeholder-image.jpg'


def build_product_snapshot(product: Product) -> dict:
    """Product fields a cart line needs even if the product is later deleted."""
    image = (product.images or [None])[0] or product.image or PLACEHOLDER_IMAGE
    return {
        'id': product.id,
        'title': product.title,
        'price': product.price,
        'image': image,
        'currency': 'USD',
        'in_stock': (product.stock or 0) > 0,
        'stock': product.stock or 0,
        'brand': product.brand,
        'category': product.primary_category_name,
        'vendor': product.vendor_id,
        'handled_by': 'vendor' if product.vendor_id else 'admin',
        'assigned_vendor': product.vendor_id,
        'weight': product.weight,
        'dimensions': product.dimensions,
        'shipping': product.shipping or 0,
        'sku': product.sku,
        'vendor_sku': product.vendor_sku,
    }


def _refresh_snapshot(item: CartItem, product: Product) -> None:
    # JSON columns only persist on reassignment
    item.product_data = dict(
        item.product_data or {},
        stock=product.stock or 0,
        in_stock=(product.stock or 0) > 0,
        shipping=product.shipping or 0,
    )


class CartManager:
    """
    Cart operations for one user.

    Quantities are validated against the live product's stock. The cart
    totals are not touched here; they are recomputed from the lines whenever
    the cart is flushed.
    """

    def __init__(self, user_id: int):
        self.user_id = user_id

    def get_or_create_cart(self) -> Cart:
        cart = Cart.query.filter_by(user_id=self.user_id).first()
        if cart is not None and cart.is_expired():
            logger.info(f"Cart for user {self.user_id} expired; starting a new one")
            db.session.delete(cart)
            db.session.flush()
            cart = None
        if cart is None:
            cart = Cart(user_id=self.user_id, currency='USD')
            db.session.add(cart)
            db.session.flush()
        return cart

    def get_cart(self) -> Cart:
        """Return the cart with stock, availability and shipping refreshed from live products."""
        cart = self.get_or_create_cart()
        for item in cart.items:
            if item.product is not None:
                _refresh_snapshot(item, item.product)
        return cart

    @staticmethod
    def _load_product(product_id) -> Product:
        try:
            product = db.session.get(Product, int(product_id))
        except (TypeError, ValueError):
            product = None
        if product is None or not product.is_active:
            raise LookupError('Product not found')
        return product

    def add_item(self, product_id, quantity=1, selected_size=None) -> Cart:
        if not product_id:
            raise ValueError('Product ID is required')
        quantity = int(quantity if quantity is not None else 1)
        if quantity < 1:
            raise ValueError('Quantity must be at least 1')

        product = self._load_product(product_id)
        if quantity > (product.stock or 0):
            raise InsufficientStockError(f"Only {product.stock} items available in stock")

        cart = self.get_or_create_cart()
        item = cart.find_item(product.id)
        if item is not None:
            new_quantity = item.quantity + quantity
            if new_quantity > (product.stock or 0):
                raise InsufficientStockError(f"Only {product.stock} items available in stock")
            item.quantity = new_quantity
            _refresh_snapshot(item, product)
        else:
            cart.items.append(CartItem(
                product_id=product.id,
                product_data=build_product_snapshot(product),
                quantity=quantity,
                selected_size=selected_size,
                price=product.price,
            ))
        logger.info(f"User {self.user_id} added {quantity} x product {product.id} to cart")
        return cart

    def update_item(self, product_id, quantity) -> Cart:
        try:
            product_id = int(product_id)
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise ValueError('Product ID and valid quantity are required')
        if quantity < 0:
            raise ValueError('Product ID and valid quantity are required')

        cart = self.get_or_create_cart()
        item = cart.find_item(product_id)
        if item is None:
            raise LookupError('Item not found in cart')

        if quantity == 0:
            cart.items.remove(item)
            return cart

        product = self._load_product(product_id)
        if quantity > (product.stock or 0):
            raise InsufficientStockError(f"Insufficient stock. Only {product.stock} items available.")
        item.quantity = quantity
        _refresh_snapshot(item, product)
        return cart

    def remove_item(self, product_id) -> Cart:
        cart = self.get_or_create_cart()
        try:
            item = cart.find_item(int(product_id))
        except (TypeError, ValueError):
            item = None
        if item is None:
            raise LookupError('Item not found in cart')
        cart.items.remove(item)
        return cart

    def clear(self) -> Cart:
        cart = self.get_or_create_cart()
        cart.items.clear()
        return cart
