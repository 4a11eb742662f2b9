"""
Image path normalization
Product images are stored as bare filenames under ``uploads/products``;
older rows carry leading slashes, ``uploads/`` prefixes or absolute URLs
pointing back at this server.
"""

import re

from marketplace import db
from marketplace.data.catalog.product import Product
from marketplace.logger import get_logger

logger = get_logger("marketplace.maintenance.image_paths")

_URL_PREFIX = re.compile(r'^https?://[^/]+/')


def normalize_image_path(path):
    """Reduce a stored image reference to its filename. Empty values pass through."""
    if not path:
        return path
    cleaned = _URL_PREFIX.sub('', path.strip())
    cleaned = cleaned.replace('\\', '/').lstrip('/')
    return cleaned.split('/')[-1]


def normalize_image_paths(dry_run=False):
    """
    Returns:
        dict: checked and fixed product counts
    """
    summary = {'checked': 0, 'fixed': 0}
    for product in Product.query.order_by(Product.id).all():
        summary['checked'] += 1
        image = normalize_image_path(product.image)
        images = [normalize_image_path(value) for value in (product.images or []) if value]
        if image == product.image and images == (product.images or []):
            continue

        logger.info(f"Product {product.id}: image {product.image!r} -> {image!r}, "
                    f"images {product.images!r} -> {images!r}")
        summary['fixed'] += 1
        if not dry_run:
            product.image = image
            product.images = images

    if dry_run:
        db.session.rollback()
    else:
        db.session.commit()
    logger.info(f"Image path normalization finished: {summary}")
    return summary
