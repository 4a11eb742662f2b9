"""
JSON envelope helpers shared by the API blueprints.
"""

from flask import jsonify, request
from sqlalchemy.orm.exc import StaleDataError

from marketplace import db
from marketplace.utils.logging_sanitizer import sanitize_exception_message


def success(data=None, message=None, status=200, **extra):
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    body.update(extra)
    return jsonify(body), status


def error(message, status=400, detail=None):
    body = {'success': False, 'message': message}
    if detail is not None:
        body['error'] = detail
    return jsonify(body), status


def failure(exc, action, logger):
    """
    Roll back and answer for an exception raised while handling a request.

    LookupError -> 404, ValueError (including the inventory errors) -> 400,
    a stale versioned row -> 409, anything else -> 500 with the traceback logged.
    """
    db.session.rollback()
    if isinstance(exc, StaleDataError):
        logger.warning(f"Concurrent update while trying to {action}: {exc}")
        return error('The record was modified by another request; reload and try again', 409)
    if isinstance(exc, LookupError):
        return error(str(exc).strip("'\"") or 'Resource not found', 404)
    if isinstance(exc, ValueError):
        logger.warning(f"Rejected request to {action}: {exc}")
        return error(str(exc), 400, detail=str(exc))
    logger.error(f"Unexpected error trying to {action}: {exc}", exc_info=True)
    return error(f'Failed to {action}', 500, detail=sanitize_exception_message(exc))


def json_body():
    return request.get_json(silent=True) or {}


def page_args(default_limit=20, max_limit=100):
    page = max(request.args.get('page', 1, type=int) or 1, 1)
    limit = request.args.get('limit', default_limit, type=int) or default_limit
    return page, min(max(limit, 1), max_limit)


def pagination_meta(pagination):
    return {
        'current_page': pagination.page,
        'total_pages': pagination.pages,
        'total_items': pagination.total,
        'per_page': pagination.per_page,
        'has_next': pagination.has_next,
        'has_prev': pagination.has_prev,
    }


def bool_arg(name, default=False):
    value = request.args.get(name)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes', 'on')
