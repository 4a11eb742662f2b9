"""
Catalog listing, search and lookup; vendor and admin product writes
"""
import pytest

from marketplace.business.catalog.category_manager import CategoryManager
from marketplace.business.inventory.inventory_manager import InventoryManager
from marketplace.data.catalog.product import Product
from marketplace.services.catalog.product_service import ProductService
from marketplace.test.conftest import make_vendor


@pytest.fixture
def catalog(db, make_product):
    outdoor = CategoryManager().create_category({'name': 'Outdoor'})
    home = CategoryManager().create_category({'name': 'Home Goods'})
    db.session.commit()
    return {
        'tent': make_product('Trail Tent', price=120.0, stock=4, keywords=['camping'],
                             categories=[outdoor.id], main_categories=[outdoor.id]),
        'mug': make_product('Camp Mug', price=8.0, stock=0, description='Enamel mug'),
        'lamp': make_product('Desk Lamp', price=45.0, stock=30, categories=[home.id], is_featured=True),
        'hidden': make_product('Secret Prototype', price=60.0, is_visible=False),
    }


def titles(products):
    return [product.title for product in products]


def test_list_filters(catalog):
    pagination, applied = ProductService.get_list_data()
    assert pagination.total == 3, "Hidden products are not listed"
    assert applied == {'sort': 'newest'}
    assert titles(pagination.items) == ['Desk Lamp', 'Camp Mug', 'Trail Tent']

    pagination, applied = ProductService.get_list_data(search='camp', sort='price-low')
    assert titles(pagination.items) == ['Camp Mug', 'Trail Tent'], "Search covers title and keywords"

    pagination, applied = ProductService.get_list_data(category='outdoor')
    assert titles(pagination.items) == ['Trail Tent']
    assert applied['category'] == 'Outdoor'

    pagination, _ = ProductService.get_list_data(min_price=40, max_price=100)
    assert titles(pagination.items) == ['Desk Lamp']

    pagination, applied = ProductService.get_list_data(category='Nope')
    assert pagination is None
    assert applied == {'category': 'Nope', 'category_found': False}

    pagination, _ = ProductService.get_list_data(include_hidden=True, sort='price-high')
    assert titles(pagination.items) == ['Trail Tent', 'Secret Prototype', 'Desk Lamp', 'Camp Mug']


def test_search_featured_and_trending(catalog):
    assert titles(ProductService.search('enamel').items) == ['Camp Mug']
    assert titles(ProductService.search('tent', category='Outdoor').items) == ['Trail Tent']
    assert titles(ProductService.search('lamp', category='Home Goods').items) == ['Desk Lamp'], \
        "A product filed only under categories still matches the category filter"
    with pytest.raises(ValueError):
        ProductService.search('   ')

    assert titles(ProductService.get_featured()) == ['Desk Lamp']

    catalog['mug'].views = 12
    assert ProductService.get_trending(limit=1)[0].title == 'Camp Mug'


def test_search_terms_match_wildcards_literally(db, make_product):
    make_product('100% Cotton Tee')
    make_product('1000 Thread Sheets')
    make_product('Snap_Lock Box')
    make_product('Snap Lock Box')

    assert titles(ProductService.search('100%').items) == ['100% Cotton Tee']
    pagination, _ = ProductService.get_list_data(search='snap_lock')
    assert titles(pagination.items) == ['Snap_Lock Box']


def test_stock_reports(catalog):
    assert titles(ProductService.get_low_stock(5)) == ['Camp Mug', 'Trail Tent']
    assert ProductService.get_stock_summary() == {
        'total_products': 4,
        'in_stock': 2,
        'low_stock': 1,
        'out_of_stock': 1,
        'stock_percentage': 50,
    }


def test_product_routes(app, client, catalog):
    response = client.get('/api/products?category=Nope')
    assert response.status_code == 200
    body = response.get_json()
    assert body['message'] == "Category 'Nope' not found"
    assert body['data']['products'] == []

    response = client.get('/api/products?search=camp&sort=price-low&limit=1')
    data = response.get_json()['data']
    assert [product['title'] for product in data['products']] == ['Camp Mug']
    assert data['pagination']['total_items'] == 2
    assert data['pagination']['has_next'] is True

    assert client.get('/api/products/search').status_code == 400
    assert client.get('/api/products/secret-prototype').status_code == 404

    response = client.get('/api/products/category/outdoor')
    assert response.get_json()['data']['category']['name'] == 'Outdoor'


def test_slug_lookup_counts_views(app, db, client, catalog):
    tent = catalog['tent']

    assert client.get('/api/products/trail-tent').status_code == 200
    assert client.get(f'/api/products/{tent.id}').status_code == 200
    assert db.session.get(Product, tent.id).views == 1, "Only slug lookups are page views"


def test_vendor_writes_only_own_products(app, db, vendor, vendor_client, make_product):
    rival = make_vendor('Bolt Hardware')
    foreign = make_product('Hammer', price=12.0, stock=3, vendor=rival)

    response = vendor_client.post('/api/products', json={'title': 'Cast Iron Pan', 'price': 30, 'stock': 7})
    assert response.status_code == 201
    created = response.get_json()['data']
    assert created['vendor_id'] == vendor.id
    inventory = InventoryManager.get_for_product(db.session.get(Product, created['id']))
    assert inventory.current_stock == 7
    assert inventory.cost_price == pytest.approx(21.0)

    response = vendor_client.post('/api/products', json={'title': '', 'price': 30})
    assert response.status_code == 400

    assert vendor_client.put(f'/api/products/{foreign.id}', json={'price': 1}).status_code == 404
    assert vendor_client.delete(f'/api/products/{foreign.id}').status_code == 404

    response = vendor_client.put(f"/api/products/{created['id']}", json={'price': 35, 'stock': 10})
    assert response.get_json()['data']['price'] == 35
    assert response.get_json()['data']['stock'] == 10

    response = vendor_client.delete(f"/api/products/{created['id']}")
    assert response.get_json()['data']['result'] == 'discontinued'
    assert InventoryManager.get_for_product(db.session.get(Product, created['id'])).stock_status == 'discontinued'


def test_admin_stock_tools(app, db, admin_client, customer_client, vendor, catalog, make_product):
    tracked = make_product('Skillet', price=40.0, stock=5, vendor=vendor)
    mug_id = catalog['mug'].id

    response = admin_client.get('/api/products/admin/low-stock?threshold=5')
    data = response.get_json()['data']
    assert data['count'] == 3
    assert data['threshold'] == 5

    response = admin_client.put(f'/api/products/{tracked.id}/stock', json={'stock': 9})
    assert response.get_json()['data']['stock'] == 9
    assert InventoryManager.get_for_product(tracked).current_stock == 9

    response = admin_client.put(f"/api/products/{mug_id}/stock", json={'stock': -1})
    assert response.status_code == 400

    response = admin_client.delete(f"/api/products/{mug_id}")
    assert response.get_json()['data']['result'] == 'deleted'
    assert db.session.get(Product, mug_id) is None

    assert customer_client.get('/api/products/admin/stock-summary').status_code == 403
