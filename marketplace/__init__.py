from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect, CSRFError
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os
from marketplace.logger import get_logger

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "500 per hour"],
    storage_uri="memory://"  # Use Redis in production for distributed systems
)


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def create_app(test_config=None):
    """
    Application factory.

    Args:
        test_config (dict, optional): Settings applied after the environment
            has been read. Tests use this to point at an in-memory database.
    """
    from pathlib import Path

    app = Flask(__name__)

    logger = get_logger("marketplace")
    logger.info("Initializing Flask application")

    test_config = test_config or {}

    # SECURITY: Require SECRET_KEY in environment - no fallback
    app.config['SECRET_KEY'] = test_config.get('SECRET_KEY') or os.environ.get('SECRET_KEY')
    if not app.config['SECRET_KEY']:
        logger.critical("SECRET_KEY not set in environment! Application cannot start.")
        raise RuntimeError("SECRET_KEY environment variable is required")

    # DATABASE_URL wins; otherwise SQLite inside the project's instance/ directory
    db_env = os.environ.get('DATABASE_URL')
    if db_env:
        app.config['SQLALCHEMY_DATABASE_URI'] = db_env
    elif 'SQLALCHEMY_DATABASE_URI' not in test_config:
        instance_dir = Path(__file__).parent.parent / 'instance'
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'marketplace.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{str(default_db_path.resolve())}"

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # HTTPS/TLS Configuration
    app.config['ENABLE_HTTPS'] = _env_flag('ENABLE_HTTPS', 'True')
    app.config['FORCE_HTTPS_REDIRECT'] = _env_flag('FORCE_HTTPS_REDIRECT', 'True')

    # Session cookie security configuration
    app.config['SESSION_COOKIE_SECURE'] = _env_flag('SESSION_COOKIE_SECURE', 'True')
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['PERMANENT_SESSION_LIFETIME'] = int(os.environ.get('PERMANENT_SESSION_LIFETIME', '3600'))
    app.config['REMEMBER_COOKIE_SECURE'] = _env_flag('REMEMBER_COOKIE_SECURE', 'True')
    app.config['REMEMBER_COOKIE_HTTPONLY'] = True
    app.config['REMEMBER_COOKIE_DURATION'] = int(os.environ.get('REMEMBER_COOKIE_DURATION', '86400'))

    # Rate limiting (Flask-Limiter reads RATELIMIT_* keys)
    app.config['RATELIMIT_ENABLED'] = _env_flag('RATELIMIT_ENABLED', 'True')

    # Marketplace settings
    app.config['DEFAULT_COMMISSION_RATE'] = float(os.environ.get('DEFAULT_COMMISSION_RATE', '20'))
    app.config['CART_EXPIRY_DAYS'] = int(os.environ.get('CART_EXPIRY_DAYS', '30'))
    app.config['FRONTEND_URL'] = os.environ.get('FRONTEND_URL', 'https://www.example-marketplace.com').rstrip('/')
    app.config['SITE_NAME'] = os.environ.get('SITE_NAME', 'Marketplace')
    app.config['DEFAULT_PAGE_SIZE'] = int(os.environ.get('DEFAULT_PAGE_SIZE', '20'))

    app.config.update(test_config)

    if app.config['ENABLE_HTTPS']:
        logger.info("HTTPS enforcement enabled")
        if app.config['FORCE_HTTPS_REDIRECT']:
            logger.info("Automatic HTTP to HTTPS redirect enabled")
    else:
        logger.warning("HTTPS enforcement DISABLED - Acceptable for development only!")

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from marketplace.data.core.user import User
    from marketplace.data.core.vendor import Vendor
    from marketplace.data.catalog.category import Category
    from marketplace.data.catalog.product import Product
    from marketplace.data.inventory.inventory import Inventory
    from marketplace.data.inventory.stock_movement import StockMovement
    from marketplace.data.inventory.inventory_batch import InventoryBatch
    from marketplace.data.inventory.inventory_alert import InventoryAlert
    from marketplace.data.cart.cart import Cart, CartItem
    from marketplace.data.orders.order import Order, OrderItem
    from marketplace.data.orders.vendor_order import VendorOrder, VendorOrderItem

    logger.debug("Models imported and registered")

    # Register blueprints
    from marketplace.auth import auth
    from marketplace.presentation.routes import init_app as init_routes

    app.register_blueprint(auth, url_prefix='/api/auth')
    init_routes(app)

    @app.before_request
    def enforce_https():
        """Redirect HTTP requests to HTTPS if HTTPS enforcement is enabled"""
        if app.config.get('ENABLE_HTTPS') and app.config.get('FORCE_HTTPS_REDIRECT'):
            from flask import request, redirect

            if not request.is_secure and not request.headers.get('X-Forwarded-Proto') == 'https':
                url = request.url.replace('http://', 'https://', 1)
                return redirect(url, code=301)

    @app.after_request
    def set_security_headers(response):
        """Add security headers to all responses"""
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-XSS-Protection'] = '1; mode=block'
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"
        if app.config.get('ENABLE_HTTPS'):
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'message': 'Resource not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'message': 'Method not allowed'}), 405

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'success': False, 'message': 'Too many requests', 'error': str(error.description)}), 429

    @app.errorhandler(CSRFError)
    def csrf_failed(error):
        logger.warning(f"CSRF validation failed: {error.description}")
        return jsonify({'success': False, 'message': 'CSRF validation failed', 'error': error.description}), 400

    @app.errorhandler(500)
    def server_error(error):
        db.session.rollback()
        return jsonify({'success': False, 'message': 'Internal server error'}), 500

    logger.info("Flask application initialization complete")

    return app
