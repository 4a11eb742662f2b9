"""
Product catalog routes: public listing and lookup, vendor/admin writes, admin stock tools
"""
from flask import Blueprint, request
from flask_login import current_user

from marketplace import db
from marketplace.auth import admin_required, vendor_or_admin_required
from marketplace.data.catalog.product import Product
from marketplace.business.catalog.product_manager import ProductManager
from marketplace.services.catalog.category_service import CategoryService
from marketplace.services.catalog.product_service import ProductService
from marketplace.presentation.routes.api.responses import (
    success, error, failure, json_body, page_args, pagination_meta,
)
from marketplace.logger import get_logger

logger = get_logger("marketplace.routes.products")

bp = Blueprint('products', __name__)


def _serialize(products):
    return [product.to_dict(include_audit_fields=False) for product in products]


def _owned_product(product_id):
    """Load a product the current user may edit; vendors only reach their own."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise LookupError('Product not found')
    if not current_user.is_admin and product.vendor_id != current_user.vendor_id:
        raise LookupError('Product not found')
    return product


@bp.route('', methods=['GET'])
def list_products():
    page, limit = page_args()
    pagination, applied = ProductService.get_list_data(
        page=page,
        limit=limit,
        category=request.args.get('category'),
        sub_category=request.args.get('subCategory') or request.args.get('sub_category'),
        search=request.args.get('search'),
        min_price=request.args.get('min_price', type=float),
        max_price=request.args.get('max_price', type=float),
        sort=request.args.get('sort'),
    )
    if pagination is None:
        return success({'products': [], 'pagination': None, 'filters': applied},
                       message=f"Category '{applied['category']}' not found")
    return success({
        'products': _serialize(pagination.items),
        'pagination': pagination_meta(pagination),
        'filters': applied,
    })


@bp.route('/search', methods=['GET'])
def search_products():
    page, limit = page_args()
    try:
        pagination = ProductService.search(
            request.args.get('q', ''),
            page=page,
            limit=limit,
            category=request.args.get('category'),
            min_price=request.args.get('min_price', type=float),
            max_price=request.args.get('max_price', type=float),
            sort=request.args.get('sort'),
        )
    except ValueError as e:
        return error(str(e), 400)
    return success({'products': _serialize(pagination.items), 'pagination': pagination_meta(pagination)})


@bp.route('/featured', methods=['GET'])
def featured_products():
    limit = min(request.args.get('limit', 8, type=int) or 8, 50)
    return success(_serialize(ProductService.get_featured(limit)))


@bp.route('/trending', methods=['GET'])
def trending_products():
    limit = min(request.args.get('limit', 8, type=int) or 8, 50)
    return success(_serialize(ProductService.get_trending(limit)))


@bp.route('/category/<string:identifier>', methods=['GET'])
def products_by_category(identifier):
    category = CategoryService.resolve_identifier(identifier)
    if category is None or not category.is_active:
        return error('Category not found', 404)
    page, limit = page_args()
    pagination = ProductService.get_category_products(category, page, limit)
    return success({
        'category': category.to_summary(),
        'products': _serialize(pagination.items),
        'pagination': pagination_meta(pagination),
    })


@bp.route('/<string:identifier>', methods=['GET'])
def get_product(identifier):
    """Look up by id or slug; slug lookups count as a product page view."""
    product = ProductService.get_by_identifier(identifier)
    if product is None:
        return error('Product not found', 404)
    if product.slug == identifier:
        try:
            ProductManager.record_view(product)
            db.session.commit()
        except Exception as e:
            return failure(e, 'record product view', logger)
    return success(product.to_dict(include_audit_fields=False))


@bp.route('', methods=['POST'])
@vendor_or_admin_required
def create_product():
    data = json_body()
    vendor_id = None if current_user.is_admin else current_user.vendor_id
    try:
        product = ProductManager(current_user.id).create_product(data, vendor_id=vendor_id)
        db.session.commit()
        logger.info(f"Product {product.id} created by {current_user.username}")
        return success(product.to_dict(include_audit_fields=False), message='Product created', status=201)
    except Exception as e:
        return failure(e, 'create product', logger)


@bp.route('/<int:product_id>', methods=['PUT', 'PATCH'])
@vendor_or_admin_required
def update_product(product_id):
    try:
        product = _owned_product(product_id)
        ProductManager(current_user.id).update_product(product, json_body())
        db.session.commit()
        return success(product.to_dict(include_audit_fields=False), message='Product updated')
    except Exception as e:
        return failure(e, 'update product', logger)


@bp.route('/<int:product_id>', methods=['DELETE'])
@vendor_or_admin_required
def delete_product(product_id):
    try:
        product = _owned_product(product_id)
        outcome = ProductManager(current_user.id).delete_product(product)
        db.session.commit()
        return success({'id': product_id, 'result': outcome}, message=f'Product {outcome}')
    except Exception as e:
        return failure(e, 'delete product', logger)


# Admin stock tools

@bp.route('/admin/low-stock', methods=['GET'])
@admin_required
def low_stock_products():
    threshold = request.args.get('threshold', 5, type=int)
    products = ProductService.get_low_stock(threshold)
    return success({'threshold': threshold, 'count': len(products), 'products': _serialize(products)})


@bp.route('/admin/stock-summary', methods=['GET'])
@admin_required
def stock_summary():
    return success(ProductService.get_stock_summary())


@bp.route('/<int:product_id>/stock', methods=['PUT'])
@admin_required
def set_product_stock(product_id):
    data = json_body()
    try:
        product = db.session.get(Product, product_id)
        if product is None:
            raise LookupError('Product not found')
        try:
            stock = int(data.get('stock'))
        except (TypeError, ValueError):
            raise ValueError('Stock must be a non-negative number')
        ProductManager(current_user.id).set_stock(product, stock,
                                                  reason=data.get('reason') or 'Stock set by administrator')
        db.session.commit()
        return success({'id': product.id, 'title': product.title, 'stock': product.stock},
                       message='Stock updated')
    except Exception as e:
        return failure(e, 'update stock', logger)
