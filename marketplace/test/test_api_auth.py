"""
Registration, login and session endpoints
"""
from marketplace.data.core.user import User
from marketplace.data.core.vendor import Vendor
from marketplace.test.conftest import PASSWORD, make_user


def test_register_customer(app, client):
    response = client.post('/api/auth/register', json={
        'username': 'dana', 'email': 'Dana@Example.com', 'password': PASSWORD,
    })
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['role'] == 'customer'
    assert data['email'] == 'dana@example.com'
    assert 'password_hash' not in data

    # Registration logs the new user in
    assert client.get('/api/auth/me').get_json()['data']['username'] == 'dana'


def test_register_vendor_creates_vendor_record(app, client):
    response = client.post('/api/auth/register', json={
        'username': 'olive', 'email': 'olive@example.com', 'password': PASSWORD,
        'business_name': 'Olive Grove Co', 'contact_phone': '555-0199',
    })
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['role'] == 'vendor'
    assert data['vendor']['business_name'] == 'Olive Grove Co'

    vendor = Vendor.query.filter_by(business_name='Olive Grove Co').one()
    assert vendor.contact_phone == '555-0199'
    assert User.query.filter_by(username='olive').one().vendor_id == vendor.id


def test_register_rejections(app, client, customer):
    response = client.post('/api/auth/register', json={'username': 'eve', 'email': 'eve@example.com'})
    assert response.status_code == 400

    response = client.post('/api/auth/register', json={
        'username': 'eve', 'email': 'eve@example.com', 'password': 'short',
    })
    assert response.get_json()['message'] == 'Password must be at least 8 characters'

    response = client.post('/api/auth/register', json={
        'username': 'someone', 'email': customer.email, 'password': PASSWORD,
    })
    assert response.status_code == 400
    assert response.get_json() == {'success': False, 'message': 'Username or email already registered'}


def test_login_by_username_or_email(app, client, customer):
    response = client.post('/api/auth/login', json={'username': 'CAROL@example.com', 'password': PASSWORD})
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Welcome, carol!'

    response = client.post('/api/auth/logout')
    assert response.get_json() == {'success': True, 'message': 'You have been logged out'}
    assert client.get('/api/auth/me').status_code == 401


def test_login_failures(app, db, client, customer):
    assert client.post('/api/auth/login', json={'username': 'carol'}).status_code == 400

    response = client.post('/api/auth/login', json={'username': 'carol', 'password': 'wrong-password'})
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Invalid username or password'

    assert client.post('/api/auth/login', json={'username': 'nobody', 'password': PASSWORD}).status_code == 401

    disabled = make_user('mallory')
    disabled.is_active = False
    db.session.commit()
    response = client.post('/api/auth/login', json={'username': 'mallory', 'password': PASSWORD})
    assert response.status_code == 403
    assert response.get_json()['message'] == 'Account is disabled'


def test_me_includes_vendor(vendor, vendor_client):
    data = vendor_client.get('/api/auth/me').get_json()['data']
    assert data['role'] == 'vendor'
    assert data['vendor'] == {'id': vendor.id, 'business_name': 'Acme Supplies'}


def test_csrf_token(client):
    response = client.get('/api/auth/csrf-token')
    assert response.status_code == 200
    assert response.get_json()['data']['csrf_token']


def test_each_client_sees_its_own_login(client, customer_client, vendor_client):
    assert customer_client.get('/api/auth/me').get_json()['data']['username'] == 'carol'
    assert vendor_client.get('/api/auth/me').get_json()['data']['username'] == 'acme'
    assert client.get('/api/auth/me').status_code == 401
    assert customer_client.get('/api/inventory/overview').status_code == 403
    assert client.get('/api/inventory/overview').status_code == 401
