"""
Cart operations: stock checks, snapshots, totals and expiry
"""
from datetime import datetime, timedelta

import pytest

from marketplace.business.cart.cart_manager import CartManager
from marketplace.business.catalog.product_manager import ProductManager
from marketplace.business.inventory.errors import InsufficientStockError
from marketplace.data.cart.cart import Cart


def test_add_item_snapshots_product_and_recomputes_totals(db, customer, vendor, make_product):
    skillet = make_product('Skillet', price=40.0, stock=5, vendor=vendor, brand='Northwind', shipping=5.0)
    mug = make_product('Mug', price=8.5, stock=10)
    manager = CartManager(customer.id)

    manager.add_item(skillet.id, 2)
    manager.add_item(mug.id)
    manager.add_item(skillet.id, 1)
    db.session.commit()

    cart = manager.get_cart()
    assert [item.quantity for item in cart.items] == [3, 1], "Adding an existing product merges the line"
    assert cart.total_items == 4
    assert cart.total_amount == pytest.approx(128.5)
    assert cart.expires_at > datetime.utcnow() + timedelta(days=29)

    snapshot = cart.items[0].product_data
    assert snapshot['title'] == 'Skillet'
    assert snapshot['handled_by'] == 'vendor'
    assert snapshot['vendor'] == vendor.id
    assert snapshot['brand'] == 'Northwind'
    assert cart.items[1].product_data['handled_by'] == 'admin'


def test_add_item_validates_quantity_and_stock(db, customer, make_product):
    product = make_product(stock=2)
    manager = CartManager(customer.id)

    with pytest.raises(ValueError):
        manager.add_item(product.id, 0)
    with pytest.raises(ValueError):
        manager.add_item(None)
    with pytest.raises(LookupError):
        manager.add_item(9999)
    with pytest.raises(InsufficientStockError):
        manager.add_item(product.id, 3)

    manager.add_item(product.id, 2)
    with pytest.raises(InsufficientStockError):
        manager.add_item(product.id, 1)


def test_update_and_remove_items(db, customer, make_product):
    product = make_product(price=5.0, stock=10)
    manager = CartManager(customer.id)
    manager.add_item(product.id, 2)

    cart = manager.update_item(product.id, 4)
    db.session.flush()
    assert cart.total_amount == 20.0

    with pytest.raises(InsufficientStockError):
        manager.update_item(product.id, 11)
    with pytest.raises(LookupError):
        manager.update_item(12345, 1)

    cart = manager.update_item(product.id, 0)
    db.session.flush()
    assert cart.items == []
    assert cart.total_items == 0
    assert cart.total_amount == 0

    manager.add_item(product.id, 1)
    manager.remove_item(product.id)
    with pytest.raises(LookupError):
        manager.remove_item(product.id)


def test_line_survives_product_deletion(db, customer, admin_user, make_product):
    product = make_product('Limited Print', price=30.0, stock=3)
    manager = CartManager(customer.id)
    manager.add_item(product.id, 1)
    db.session.commit()

    assert ProductManager(admin_user.id).delete_product(product) == 'deleted'
    db.session.commit()

    cart = manager.get_cart()
    assert len(cart.items) == 1
    assert cart.items[0].product_id is None
    assert cart.items[0].product_data['title'] == 'Limited Print'
    assert cart.total_amount == 30.0


def test_expired_cart_is_replaced(db, customer, make_product):
    product = make_product(stock=5)
    manager = CartManager(customer.id)
    manager.add_item(product.id, 1)
    db.session.commit()

    Cart.query.filter_by(user_id=customer.id).update({'expires_at': datetime.utcnow() - timedelta(minutes=1)})
    db.session.commit()

    cart = manager.get_cart()
    db.session.commit()
    assert cart.items == []
    assert Cart.query.filter_by(user_id=customer.id).count() == 1


def test_cart_api(customer_client, make_product):
    product = make_product('Desk Lamp', price=25.0, stock=4)

    response = customer_client.post('/api/cart/items', json={'product_id': product.id, 'quantity': 2})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['total_items'] == 2
    assert data['total_amount'] == 50.0

    response = customer_client.put(f'/api/cart/items/{product.id}', json={'quantity': 9})
    assert response.status_code == 400
    assert response.get_json()['success'] is False

    response = customer_client.delete(f'/api/cart/items/{product.id}')
    assert response.get_json()['data']['items'] == []

    response = customer_client.delete('/api/cart/items/777')
    assert response.status_code == 404


def test_cart_requires_login(client):
    response = client.get('/api/cart')
    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'message': 'Authentication required'}
