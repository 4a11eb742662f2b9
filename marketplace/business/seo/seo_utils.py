"""
Slug, meta-tag and alt-text helpers shared by products and categories.
"""

import re
from typing import Dict, List, Optional

from flask import current_app, has_app_context

SLUG_MAX_LENGTH = 100
META_TITLE_MAX_LENGTH = 60
META_DESCRIPTION_MAX_LENGTH = 160
ALT_TEXT_MAX_LENGTH = 125

STOP_WORDS = frozenset([
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of',
    'with', 'by', 'is', 'are', 'was', 'were', 'be', 'been', 'have', 'has', 'had',
    'do', 'does', 'did', 'will', 'would', 'could', 'should', 'may', 'might', 'can',
    'this', 'that', 'these', 'those',
])

_NON_SLUG_CHARS = re.compile(r'[^\w\s-]', re.ASCII)
_SLUG_SEPARATORS = re.compile(r'[\s_-]+', re.ASCII)
_HTML_TAGS = re.compile(r'<[^>]*>')
_WHITESPACE = re.compile(r'\s+')
_SLUG_PATTERN = re.compile(r'^[a-z0-9-]+$')


def generate_slug(text: Optional[str]) -> str:
    """
    Lowercase, drop punctuation, hyphenate whitespace/underscores and cap at 100 chars.

    >>> generate_slug("  Men's Running Shoes -- 2024 ")
    'mens-running-shoes-2024'
    """
    if not text:
        return ''
    slug = _NON_SLUG_CHARS.sub('', text.lower().strip())
    slug = _SLUG_SEPARATORS.sub('-', slug)
    slug = slug.strip('-')
    return slug[:SLUG_MAX_LENGTH]


def generate_unique_slug(text, model, exclude_id=None, session=None, reserved=None) -> str:
    """
    Generate a slug that no other row of ``model`` uses.

    Collisions get ``-1``, ``-2``, ... appended to the base slug, which is
    shortened first so the result stays within SLUG_MAX_LENGTH.

    Args:
        text: Source text (title or name)
        model: Mapped class with a ``slug`` column
        exclude_id: Row to ignore, so a row does not collide with itself
        session: Session to query with; defaults to ``model.query``
        reserved: Slugs already claimed by pending rows in the same flush

    Returns:
        str: Unique slug
    """
    base_slug = generate_slug(text) or model.__name__.lower()
    reserved = reserved if reserved is not None else set()

    def taken(candidate):
        if candidate in reserved:
            return True
        query = session.query(model) if session is not None else model.query
        query = query.filter(model.slug == candidate)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        return query.first() is not None

    slug = base_slug
    counter = 1
    while taken(slug):
        suffix = f"-{counter}"
        slug = base_slug[:SLUG_MAX_LENGTH - len(suffix)].rstrip('-') + suffix
        counter += 1
    return slug


def extract_keywords(text: Optional[str], max_keywords: int = 10) -> List[str]:
    """Words longer than two characters, stop words removed, in order of appearance."""
    if not text:
        return []
    words = re.sub(r'[^\w\s]', ' ', text.lower()).split()
    return [word for word in words if len(word) > 2 and word not in STOP_WORDS][:max_keywords]


def generate_meta_title(title: Optional[str], max_length: int = META_TITLE_MAX_LENGTH) -> str:
    if not title:
        return ''
    if len(title) <= max_length:
        return title
    return title[:max_length - 3] + '...'


def generate_meta_description(content: Optional[str], max_length: int = META_DESCRIPTION_MAX_LENGTH) -> str:
    """
    Plain-text description of at most ``max_length`` characters.

    HTML is stripped and whitespace collapsed. Longer text is cut at the
    last full stop when that keeps at least ``max_length - 50`` characters,
    otherwise at the last space with an ellipsis.
    """
    if not content:
        return ''

    clean = _WHITESPACE.sub(' ', _HTML_TAGS.sub(' ', content)).strip()
    if len(clean) <= max_length:
        return clean

    truncated = clean[:max_length]
    last_period = truncated.rfind('.')
    last_space = truncated.rfind(' ')

    if last_period > max_length - 50:
        return truncated[:last_period + 1]
    if last_space > 0:
        return truncated[:last_space] + '...'
    return truncated + '...'


def _site_name() -> str:
    if has_app_context():
        return current_app.config.get('SITE_NAME', 'Marketplace')
    return 'Marketplace'


def generate_alt_text(product_name: Optional[str], image_index: int = 0) -> str:
    base_name = product_name or 'Product image'
    suffix = f" - Image {image_index + 1}" if image_index > 0 else ''
    return f"{base_name}{suffix} - Buy online at {_site_name()}"[:ALT_TEXT_MAX_LENGTH]


def validate_seo_data(title=None, description=None, slug=None) -> Dict[str, Dict]:
    """
    Validate the fields that were supplied.

    Returns:
        dict: field -> {'valid': bool, 'message': str (only when invalid)}
    """
    results = {}

    if title is not None:
        if not title:
            results['title'] = {'valid': False, 'message': 'Title is required'}
        elif len(title) < 10:
            results['title'] = {'valid': False, 'message': 'Title too short (minimum 10 characters)'}
        elif len(title) > 60:
            results['title'] = {'valid': False, 'message': 'Title too long (maximum 60 characters)'}
        else:
            results['title'] = {'valid': True}

    if description is not None:
        if not description:
            results['description'] = {'valid': False, 'message': 'Description is required'}
        elif len(description) < 50:
            results['description'] = {'valid': False, 'message': 'Description too short (minimum 50 characters)'}
        elif len(description) > 160:
            results['description'] = {'valid': False, 'message': 'Description too long (maximum 160 characters)'}
        else:
            results['description'] = {'valid': True}

    if slug is not None:
        if not slug:
            results['slug'] = {'valid': False, 'message': 'Slug is required'}
        elif not _SLUG_PATTERN.match(slug):
            results['slug'] = {'valid': False, 'message': 'Slug can only contain lowercase letters, numbers, and hyphens'}
        elif len(slug) < 3:
            results['slug'] = {'valid': False, 'message': 'Slug too short (minimum 3 characters)'}
        elif len(slug) > SLUG_MAX_LENGTH:
            results['slug'] = {'valid': False, 'message': 'Slug too long (maximum 100 characters)'}
        else:
            results['slug'] = {'valid': True}

    return results
