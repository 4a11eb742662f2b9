"""
Sitemap, robots.txt and SEO coverage reports.
"""

from datetime import datetime
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from marketplace import db
from marketplace.data.catalog.category import Category
from marketplace.data.catalog.product import Product
from marketplace.logger import get_logger

logger = get_logger("marketplace.business.seo.sitemap")

SITEMAP_NAMESPACE = 'http://www.sitemaps.org/schemas/sitemap/0.9'
IMAGE_NAMESPACE = 'http://www.google.com/schemas/sitemap-image/1.1'
PLACEHOLDER_IMAGE = 'placeholder-image.jpg'
PRODUCT_IMAGE_PATH = '/uploads/products/'

STATIC_PAGES = (
    ('/products', 'daily', '0.9'),
    ('/categories', 'weekly', '0.8'),
    ('/about', 'monthly', '0.6'),
    ('/contact', 'monthly', '0.6'),
    ('/privacy', 'yearly', '0.3'),
    ('/terms', 'yearly', '0.3'),
)

ENTRY_SETTINGS = {
    'product': ('/product/', 'weekly', '0.8'),
    'category': ('/category/', 'monthly', '0.7'),
}

_XML_ENTITIES = {'"': '&quot;', "'": '&apos;'}


def escape_xml(value) -> str:
    if value is None:
        return ''
    return escape(str(value), _XML_ENTITIES)


def valid_lastmod(value, now: Optional[datetime] = None) -> str:
    """ISO timestamp for ``value``; missing, unparseable or future dates become ``now``."""
    now = now or datetime.utcnow()
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00')).replace(tzinfo=None)
        except ValueError:
            logger.warning(f"Invalid sitemap date {value!r}, using current date")
            value = None
    if not isinstance(value, datetime) or value > now:
        if value is not None:
            logger.warning(f"Future sitemap date {value.isoformat()}, using current date")
        value = now
    return value.isoformat()


def product_images(product: Product) -> List[str]:
    images = product.images or ([product.image] if product.image else [])
    return [image for image in images if image and image != PLACEHOLDER_IMAGE]


def build_sitemap_entry(item, kind: str, base_url: str, now: Optional[datetime] = None) -> Dict:
    """
    Sitemap fields for a product or category.

    Args:
        item: Product or Category row
        kind: 'product' or 'category'
        base_url: Public site URL without trailing slash

    Returns:
        dict with loc, lastmod, changefreq, priority and images
    """
    prefix, changefreq, priority = ENTRY_SETTINGS[kind]
    path = item.slug or item.id
    images = []
    if kind == 'product':
        images = [{'loc': f"{base_url}{PRODUCT_IMAGE_PATH}{image}", 'title': item.title}
                  for image in product_images(item)]
    return {
        'loc': f"{base_url}{prefix}{path}",
        'lastmod': valid_lastmod(item.updated_at or item.created_at, now),
        'changefreq': changefreq,
        'priority': priority,
        'images': images,
    }


def _url_block(entry: Dict) -> List[str]:
    lines = [
        '  <url>',
        f"    <loc>{escape_xml(entry['loc'])}</loc>",
        f"    <lastmod>{entry['lastmod']}</lastmod>",
        f"    <changefreq>{entry['changefreq']}</changefreq>",
        f"    <priority>{entry['priority']}</priority>",
    ]
    for image in entry.get('images', []):
        lines.extend([
            '    <image:image>',
            f"      <image:loc>{escape_xml(image['loc'])}</image:loc>",
            f"      <image:title>{escape_xml(image['title'])}</image:title>",
            '    </image:image>',
        ])
    lines.append('  </url>')
    return lines


def sitemap_entries(base_url: str, now: Optional[datetime] = None) -> List[Dict]:
    """Homepage, static pages, active categories and active visible products, in that order."""
    now = now or datetime.utcnow()
    current = now.isoformat()
    entries = [{'loc': base_url, 'lastmod': current, 'changefreq': 'daily', 'priority': '1.0', 'images': []}]
    entries.extend({'loc': f"{base_url}{path}", 'lastmod': current, 'changefreq': changefreq,
                    'priority': priority, 'images': []}
                   for path, changefreq, priority in STATIC_PAGES)

    categories = Category.query.filter(Category.is_active.is_(True)).order_by(Category.id).all()
    entries.extend(build_sitemap_entry(category, 'category', base_url, now) for category in categories)

    products = (Product.query
                .filter(Product.is_active.is_(True), Product.is_visible.is_(True))
                .order_by(Product.id).all())
    entries.extend(build_sitemap_entry(product, 'product', base_url, now) for product in products)

    logger.info(f"Sitemap built: {len(products)} products, {len(categories)} categories, "
                f"{len(STATIC_PAGES)} static pages")
    return entries


def generate_sitemap_xml(base_url: str, now: Optional[datetime] = None) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<urlset xmlns="{SITEMAP_NAMESPACE}" xmlns:image="{IMAGE_NAMESPACE}">',
    ]
    for entry in sitemap_entries(base_url, now):
        lines.extend(_url_block(entry))
    lines.append('</urlset>')
    return '\n'.join(lines) + '\n'


def generate_robots_txt(base_url: str) -> str:
    return (
        "User-agent: *\n"
        "Allow: /\n"
        "\n"
        "# Sitemaps\n"
        f"Sitemap: {base_url}/api/seo/sitemap.xml\n"
        "\n"
        "Crawl-delay: 1\n"
        "\n"
        "Disallow: /admin/\n"
        "Disallow: /vendor/\n"
        "Disallow: /api/\n"
        "Disallow: /uploads/\n"
        "Disallow: /private/\n"
        "\n"
        "Allow: /product/\n"
        "Allow: /category/\n"
        "Allow: /about\n"
        "Allow: /contact\n"
        "Allow: /privacy\n"
        "Allow: /terms\n"
    )


def _filled(column):
    return db.func.sum(db.case((db.and_(column.isnot(None), column != ''), 1), else_=0))


def _coverage(model) -> Dict:
    total, slugs, titles, descriptions = db.session.query(
        db.func.count(model.id),
        _filled(model.slug),
        _filled(model.meta_title),
        _filled(model.meta_description),
    ).one()
    total = total or 0

    def ratio(count):
        count = count or 0
        pct = round(count / total * 100) if total else 0
        return {'count': count, 'percentage': pct, 'display': f"{count}/{total} ({pct}%)"}

    return {
        'total': total,
        'seo_optimized': {
            'slugs': ratio(slugs),
            'meta_titles': ratio(titles),
            'meta_descriptions': ratio(descriptions),
        },
    }


def seo_health() -> Dict:
    """How many products and categories carry a slug, meta title and meta description."""
    return {
        'timestamp': datetime.utcnow().isoformat(),
        'products': _coverage(Product),
        'categories': _coverage(Category),
    }
