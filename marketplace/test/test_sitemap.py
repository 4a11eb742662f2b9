"""
Sitemap XML, robots.txt and SEO coverage
"""
from datetime import datetime

from marketplace.business.catalog.category_manager import CategoryManager
from marketplace.business.seo.sitemap import (
    build_sitemap_entry, escape_xml, generate_robots_txt, generate_sitemap_xml, seo_health,
    sitemap_entries, valid_lastmod,
)

BASE_URL = 'https://shop.example.com'
NOW = datetime(2026, 3, 20, 12, 0)


def test_escape_xml():
    assert escape_xml('Salt & "Pepper" <Mill> it\'s') == 'Salt &amp; &quot;Pepper&quot; &lt;Mill&gt; it&apos;s'
    assert escape_xml(None) == ''
    assert escape_xml(42) == '42'


def test_valid_lastmod():
    assert valid_lastmod(datetime(2026, 1, 2, 3, 4, 5), NOW) == '2026-01-02T03:04:05'
    assert valid_lastmod('2026-02-01T10:00:00Z', NOW) == '2026-02-01T10:00:00'
    assert valid_lastmod('not a date', NOW) == NOW.isoformat()
    assert valid_lastmod(datetime(2030, 1, 1), NOW) == NOW.isoformat(), "Future dates are clamped"
    assert valid_lastmod(None, NOW) == NOW.isoformat()


def test_product_entry_skips_placeholder_images(db, make_product):
    product = make_product('Trail Tent', images=['tent-front.jpg', 'placeholder-image.jpg'])

    entry = build_sitemap_entry(product, 'product', BASE_URL, NOW)
    assert entry['loc'] == f'{BASE_URL}/product/trail-tent'
    assert entry['changefreq'] == 'weekly'
    assert entry['priority'] == '0.8'
    assert entry['images'] == [{'loc': f'{BASE_URL}/uploads/products/tent-front.jpg', 'title': 'Trail Tent'}]


def test_sitemap_lists_active_visible_catalog(db, make_product):
    CategoryManager().create_category({'name': 'Camp & Hike'})
    CategoryManager().create_category({'name': 'Retired', 'is_active': False})
    make_product('Trail Tent')
    make_product('Secret Prototype', is_visible=False)
    make_product('Old Stove', is_active=False)
    db.session.commit()

    entries = sitemap_entries(BASE_URL, NOW)
    locs = [entry['loc'] for entry in entries]
    assert locs[0] == BASE_URL
    assert locs[1:7] == [f'{BASE_URL}{path}' for path in
                         ('/products', '/categories', '/about', '/contact', '/privacy', '/terms')]
    assert locs[7:] == [f'{BASE_URL}/category/camp-hike', f'{BASE_URL}/product/trail-tent']

    xml = generate_sitemap_xml(BASE_URL, NOW)
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<urlset')
    assert 'xmlns:image="http://www.google.com/schemas/sitemap-image/1.1"' in xml
    assert f'<loc>{BASE_URL}/product/trail-tent</loc>' in xml
    assert 'secret-prototype' not in xml
    assert xml.count('<url>') == 9
    assert xml.endswith('</urlset>\n')


def test_robots_txt():
    robots = generate_robots_txt(BASE_URL)
    assert robots.startswith('User-agent: *\nAllow: /\n')
    assert f'Sitemap: {BASE_URL}/api/seo/sitemap.xml' in robots
    assert 'Disallow: /api/' in robots
    assert 'Allow: /product/' in robots


def test_seo_health(db, make_product):
    make_product('Trail Tent', description='A light two person tent.')
    make_product('Camp Mug')

    health = seo_health()
    assert health['products']['total'] == 2
    assert health['products']['seo_optimized']['slugs']['display'] == '2/2 (100%)'
    assert health['products']['seo_optimized']['meta_descriptions']['percentage'] == 50
    assert health['categories'] == {
        'total': 0,
        'seo_optimized': {
            'slugs': {'count': 0, 'percentage': 0, 'display': '0/0 (0%)'},
            'meta_titles': {'count': 0, 'percentage': 0, 'display': '0/0 (0%)'},
            'meta_descriptions': {'count': 0, 'percentage': 0, 'display': '0/0 (0%)'},
        },
    }


def test_seo_routes(app, client, make_product):
    make_product('Trail Tent')

    response = client.get('/api/seo/sitemap.xml')
    assert response.status_code == 200
    assert response.mimetype == 'application/xml'
    assert response.headers['Cache-Control'] == 'public, max-age=3600'
    assert b'https://shop.example.com/product/trail-tent' in response.data

    response = client.get('/api/seo/robots.txt')
    assert response.mimetype == 'text/plain'
    assert b'Sitemap: https://shop.example.com/api/seo/sitemap.xml' in response.data

    response = client.get('/api/seo/health')
    assert response.get_json()['data']['products']['total'] == 1

    response = client.post('/api/seo/analyze', json={'title': 'Trail Tent', 'description': 'Sleeps two.'})
    suggested = response.get_json()['data']['suggested']
    assert suggested['slug'] == 'trail-tent'
    assert suggested['meta_description'] == 'Sleeps two.'
