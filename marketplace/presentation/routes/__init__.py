"""
Routes package for the marketplace JSON API
"""

from marketplace.logger import get_logger

logger = get_logger("marketplace.routes")


def init_app(app):
    """Register every API blueprint with the Flask app"""
    logger.debug("Initializing route blueprints")

    from .api import products, categories, cart, orders, inventory, vendor, seo

    app.register_blueprint(products.bp, url_prefix='/api/products')
    app.register_blueprint(categories.bp, url_prefix='/api/categories')
    app.register_blueprint(cart.bp, url_prefix='/api/cart')
    app.register_blueprint(orders.bp, url_prefix='/api/orders')
    app.register_blueprint(inventory.bp, url_prefix='/api/inventory')
    app.register_blueprint(vendor.bp, url_prefix='/api/vendor')
    app.register_blueprint(seo.bp, url_prefix='/api/seo')

    logger.info("All route blueprints registered")
