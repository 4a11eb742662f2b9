"""
Maintenance jobs: inventory sync, image paths, catalog repairs, indexes and cart purge
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import inspect

from marketplace.business.cart.cart_manager import CartManager
from marketplace.business.catalog.category_manager import CategoryManager
from marketplace.business.inventory.inventory_manager import InventoryManager
from marketplace.data.cart.cart import Cart
from marketplace.data.catalog.category import Category
from marketplace.data.catalog.product import Product
from marketplace.maintenance.carts import purge_expired_carts
from marketplace.maintenance.catalog_fixes import backfill_seo, rename_category
from marketplace.maintenance.image_paths import normalize_image_path, normalize_image_paths
from marketplace.maintenance.indexes import QUERY_INDEXES, ensure_indexes
from marketplace.maintenance.inventory_sync import sync_inventory
from marketplace.test.conftest import make_user


def test_sync_inventory(db, vendor, make_product):
    drifted = make_product('Skillet', stock=20, vendor=vendor)
    make_product('Mug', stock=5, vendor=vendor)
    make_product('House Brand Kettle', stock=3)
    untracked = Product(title='Legacy Lamp', price=20.0, stock=7, vendor_id=vendor.id)
    db.session.add(untracked)
    db.session.commit()
    Product.query.filter_by(id=drifted.id).update({'stock': 99})
    db.session.commit()

    expected = {'checked': 3, 'created': 1, 'resynced': 1, 'skipped': 1}
    assert sync_inventory(dry_run=True) == expected
    assert InventoryManager.get_for_product(untracked) is None, "A dry run writes nothing"

    assert sync_inventory() == expected
    inventory = InventoryManager.get_for_product(untracked)
    assert inventory.current_stock == 7
    assert inventory.cost_price == pytest.approx(14.0)
    assert drifted.stock == 20

    assert sync_inventory() == {'checked': 3, 'created': 0, 'resynced': 0, 'skipped': 3}


@pytest.mark.parametrize('stored, expected', [
    ('http://localhost:5000/uploads/products/lamp.jpg', 'lamp.jpg'),
    ('https://shop.example.com/uploads/products/lamp.jpg', 'lamp.jpg'),
    ('/uploads/products/lamp.jpg', 'lamp.jpg'),
    ('uploads\\products\\lamp.jpg', 'lamp.jpg'),
    ('lamp.jpg', 'lamp.jpg'),
    ('', ''),
    (None, None),
])
def test_normalize_image_path(stored, expected):
    assert normalize_image_path(stored) == expected


def test_normalize_image_paths(db, make_product):
    messy = make_product('Lamp', image='/uploads/products/lamp.jpg',
                         images=['https://shop.example.com/uploads/products/lamp.jpg', 'lamp-side.jpg'])
    make_product('Mug', image='mug.jpg', images=['mug.jpg'])

    assert normalize_image_paths(dry_run=True) == {'checked': 2, 'fixed': 1}
    assert messy.image == '/uploads/products/lamp.jpg'

    assert normalize_image_paths() == {'checked': 2, 'fixed': 1}
    assert messy.image == 'lamp.jpg'
    assert messy.images == ['lamp.jpg', 'lamp-side.jpg']
    assert normalize_image_paths()['fixed'] == 0


def test_rename_category_regenerates_derived_slug(db):
    manager = CategoryManager()
    kitchen = manager.create_category({'name': 'Kitchn'})
    garden = manager.create_category({'name': 'Gardn', 'slug': 'outdoor-living'})
    db.session.commit()
    assert kitchen.slug == 'kitchn'

    assert rename_category('kitchn', 'Kitchen') == 1
    assert kitchen.name == 'Kitchen'
    assert kitchen.slug == 'kitchen'
    assert kitchen.meta_title.startswith('Kitchen')

    assert rename_category('Gardn', 'Garden') == 1
    assert garden.slug == 'outdoor-living', "Hand-set slugs are kept"

    with pytest.raises(ValueError):
        rename_category('Kitchen', 'garden')
    assert rename_category('Nonexistent', 'Anything') == 0


def test_backfill_seo(db, make_product):
    make_product('Trail Tent')
    make_product('Camp Mug')
    CategoryManager().create_category({'name': 'Outdoor'})
    db.session.commit()
    Product.query.update({'slug': None, 'meta_title': None})
    Category.query.update({'meta_title': ''})
    db.session.commit()

    assert backfill_seo() == {'categories': 1, 'products': 2}
    assert sorted(product.slug for product in Product.query.all()) == ['camp-mug', 'trail-tent']
    assert Category.query.one().meta_title.startswith('Outdoor')
    assert backfill_seo() == {'categories': 0, 'products': 0}


def test_ensure_indexes(db):
    checked = ensure_indexes()
    assert set(ensure_indexes()) == set(checked)

    names = {name for name, _, _ in QUERY_INDEXES}
    assert names <= set(checked)
    product_indexes = {index['name'] for index in inspect(db.engine).get_indexes('products')}
    assert {'ix_products_active_visible', 'ix_products_price'} <= product_indexes


def test_purge_expired_carts(db, make_product):
    product = make_product(stock=10)
    stale, fresh = make_user('stale'), make_user('fresh')
    CartManager(stale.id).add_item(product.id, 1)
    CartManager(fresh.id).add_item(product.id, 2)
    db.session.commit()
    Cart.query.filter_by(user_id=stale.id).update({'expires_at': datetime.utcnow() - timedelta(days=1)})
    db.session.commit()

    assert purge_expired_carts() == 1
    assert [cart.user_id for cart in Cart.query.all()] == [fresh.id]
    assert purge_expired_carts() == 0
