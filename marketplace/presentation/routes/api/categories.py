"""
Category routes
"""
from flask import Blueprint, request
from flask_login import current_user

from marketplace import db
from marketplace.auth import vendor_or_admin_required, admin_required
from marketplace.data.catalog.category import Category
from marketplace.business.catalog.category_manager import CategoryManager
from marketplace.services.catalog.category_service import CategoryService
from marketplace.presentation.routes.api.responses import success, error, failure, json_body, bool_arg
from marketplace.logger import get_logger

logger = get_logger("marketplace.routes.categories")

bp = Blueprint('categories', __name__)


@bp.route('', methods=['GET'])
def list_categories():
    categories = CategoryService.list_categories(
        active_only=not bool_arg('include_inactive'),
        parent_id=request.args.get('parent_id', type=int),
        top_level_only=bool_arg('top_level'),
    )
    return success([category.to_dict(include_audit_fields=False) for category in categories])


@bp.route('/<string:identifier>', methods=['GET'])
def get_category(identifier):
    category = CategoryService.resolve_identifier(identifier)
    if category is None:
        return error('Category not found', 404)
    data = category.to_dict(include_audit_fields=False)
    data['children'] = [child.to_summary() for child in category.children if child.is_active]
    return success(data)


@bp.route('', methods=['POST'])
@vendor_or_admin_required
def create_category():
    created_by_type = 'admin' if current_user.is_admin else 'vendor'
    try:
        category = CategoryManager(current_user.id, created_by_type).create_category(json_body())
        db.session.commit()
        return success(category.to_dict(include_audit_fields=False), message='Category created', status=201)
    except Exception as e:
        return failure(e, 'create category', logger)


@bp.route('/<int:category_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_category(category_id):
    try:
        category = db.session.get(Category, category_id)
        if category is None:
            raise LookupError('Category not found')
        CategoryManager(current_user.id).update_category(category, json_body())
        db.session.commit()
        return success(category.to_dict(include_audit_fields=False), message='Category updated')
    except Exception as e:
        return failure(e, 'update category', logger)
