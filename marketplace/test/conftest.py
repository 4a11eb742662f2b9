"""
Pytest configuration and fixtures

Every test gets a fresh application over an in-memory SQLite database.
"""
import os

os.environ.setdefault('LOG_TO_FILE', 'False')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

import pytest
from flask import g

from marketplace import create_app
from marketplace import db as _db
from marketplace.data.core.user import User
from marketplace.data.core.vendor import Vendor
from marketplace.business.catalog.product_manager import ProductManager

PASSWORD = 'password123'

TEST_CONFIG = {
    'SECRET_KEY': 'test-secret-key',
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'WTF_CSRF_ENABLED': False,
    'RATELIMIT_ENABLED': False,
    'ENABLE_HTTPS': False,
    'FORCE_HTTPS_REDIRECT': False,
    'SESSION_COOKIE_SECURE': False,
    'REMEMBER_COOKIE_SECURE': False,
    'FRONTEND_URL': 'https://shop.example.com',
    'DEFAULT_COMMISSION_RATE': 20,
}


@pytest.fixture(scope='function')
def app(monkeypatch):
    """Create Flask application for testing"""
    monkeypatch.delenv('DATABASE_URL', raising=False)
    app = create_app(dict(TEST_CONFIG))

    @app.before_request
    def forget_cached_login():
        # Requests share the test's app context, so g outlives each request
        g.pop('_login_user', None)

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def db(app):
    return _db


@pytest.fixture(scope='function')
def client(app):
    """Create Flask test client"""
    return app.test_client()


def make_user(username, role='customer', vendor=None, password=PASSWORD):
    user = User(username=username, email=f'{username}@example.com', role=role,
                vendor_id=vendor.id if vendor is not None else None)
    user.set_password(password)
    _db.session.add(user)
    _db.session.commit()
    return user


def make_vendor(business_name='Acme Supplies', commission_rate=None):
    vendor = Vendor(business_name=business_name,
                    email=f"sales@{business_name.lower().replace(' ', '-')}.example.com",
                    commission_rate=commission_rate)
    _db.session.add(vendor)
    _db.session.commit()
    return vendor


def login_user(client, username, password=PASSWORD):
    """Helper function to log a user in through the JSON endpoint"""
    response = client.post('/api/auth/login', json={'username': username, 'password': password})
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def vendor(app):
    return make_vendor('Acme Supplies', commission_rate=10)


@pytest.fixture
def vendor_user(vendor):
    return make_user('acme', role='vendor', vendor=vendor)


@pytest.fixture
def customer(app):
    return make_user('carol')


@pytest.fixture
def admin_user(app):
    return make_user('root', role='admin')


@pytest.fixture
def customer_client(app, customer):
    return login_user(app.test_client(), customer.username)


@pytest.fixture
def vendor_client(app, vendor_user):
    return login_user(app.test_client(), vendor_user.username)


@pytest.fixture
def admin_client(app, admin_user):
    return login_user(app.test_client(), admin_user.username)


@pytest.fixture
def make_product(app):
    """Factory creating committed products; pass ``vendor`` for an inventory-tracked product."""
    def _make(title='Widget', price=10.0, stock=20, vendor=None, user_id=None, **fields):
        data = dict(fields, title=title, price=price, stock=stock)
        product = ProductManager(user_id).create_product(
            data, vendor_id=vendor.id if vendor is not None else None)
        _db.session.commit()
        return product
    return _make
