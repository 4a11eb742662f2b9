"""
SEO routes - sitemap.xml, robots.txt and metadata coverage
"""
from flask import Blueprint, Response, current_app

from marketplace.business.seo.sitemap import generate_sitemap_xml, generate_robots_txt, seo_health
from marketplace.business.seo.seo_utils import (
    generate_slug, generate_meta_title, generate_meta_description, extract_keywords, validate_seo_data,
)
from marketplace.presentation.routes.api.responses import success, failure, json_body
from marketplace.logger import get_logger

logger = get_logger("marketplace.routes.seo")

bp = Blueprint('seo', __name__)


@bp.route('/sitemap.xml', methods=['GET'])
def sitemap():
    try:
        xml = generate_sitemap_xml(current_app.config['FRONTEND_URL'])
    except Exception as e:
        return failure(e, 'generate sitemap', logger)
    return Response(xml, mimetype='application/xml', headers={'Cache-Control': 'public, max-age=3600'})


@bp.route('/robots.txt', methods=['GET'])
def robots():
    return Response(generate_robots_txt(current_app.config['FRONTEND_URL']), mimetype='text/plain',
                    headers={'Cache-Control': 'public, max-age=86400'})


@bp.route('/health', methods=['GET'])
def health():
    try:
        return success(seo_health())
    except Exception as e:
        return failure(e, 'check SEO health', logger)


@bp.route('/analyze', methods=['POST'])
def analyze():
    """Suggest slug/meta values for a draft title and description and validate them."""
    data = json_body()
    title = (data.get('title') or '').strip()
    description = data.get('description') or ''
    suggested = {
        'slug': generate_slug(title),
        'meta_title': generate_meta_title(title) if title else '',
        'meta_description': generate_meta_description(description),
        'keywords': extract_keywords(f"{title} {description}"),
    }
    return success({
        'suggested': suggested,
        'validation': validate_seo_data(title=suggested['meta_title'],
                                        description=suggested['meta_description'],
                                        slug=suggested['slug']),
    })
