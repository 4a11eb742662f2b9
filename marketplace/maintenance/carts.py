"""
Expired cart purge. Carts are also dropped lazily when their owner next
touches them; this clears the ones nobody comes back to.
"""

from datetime import datetime

from marketplace import db
from marketplace.data.cart.cart import Cart
from marketplace.logger import get_logger

logger = get_logger("marketplace.maintenance.carts")


def purge_expired_carts(now=None):
    """
    Returns:
        int: Number of carts deleted
    """
    now = now or datetime.utcnow()
    expired = Cart.query.filter(Cart.expires_at.isnot(None), Cart.expires_at <= now).all()
    for cart in expired:
        db.session.delete(cart)
    db.session.commit()
    logger.info(f"Purged {len(expired)} expired carts")
    return len(expired)
