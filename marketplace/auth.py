from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from marketplace import db, limiter, login_manager
from marketplace.data.core.user import User
from marketplace.data.core.vendor import Vendor
from marketplace.logger import get_logger
from marketplace.utils.logging_sanitizer import sanitize_request_payload

logger = get_logger("marketplace.auth")
auth = Blueprint('auth', __name__)

MIN_PASSWORD_LENGTH = 8


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'message': 'Authentication required'}), 401


def _forbidden(message):
    return jsonify({'success': False, 'message': message}), 403


def vendor_required(view):
    """Allow only logged-in users linked to an active vendor."""
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not current_user.is_vendor:
            logger.warning(f"User {current_user.username} denied vendor access to {request.path}")
            return _forbidden('Vendor access required')
        if current_user.vendor is None or not current_user.vendor.is_active:
            return _forbidden('Vendor account is not active')
        return view(*args, **kwargs)
    return wrapped


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not current_user.is_admin:
            logger.warning(f"User {current_user.username} denied admin access to {request.path}")
            return _forbidden('Admin access required')
        return view(*args, **kwargs)
    return wrapped


def vendor_or_admin_required(view):
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not (current_user.is_admin or current_user.is_vendor):
            return _forbidden('Vendor or admin access required')
        return view(*args, **kwargs)
    return wrapped


def _user_payload(user):
    data = user.to_dict(include_audit_fields=False)
    if user.vendor is not None:
        data['vendor'] = {'id': user.vendor.id, 'business_name': user.vendor.business_name}
    return data


@auth.route('/csrf-token', methods=['GET'])
def csrf_token():
    return jsonify({'success': True, 'data': {'csrf_token': generate_csrf()}})


@auth.route('/register', methods=['POST'])
def register():
    """Create a customer account, or a vendor account with its vendor record when business_name is given."""
    data = request.get_json(silent=True) or {}
    logger.debug(f"Registration attempt: {sanitize_request_payload(data)}")

    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    business_name = (data.get('business_name') or '').strip()

    if not username or not email or not password:
        return jsonify({'success': False, 'message': 'Username, email and password are required'}), 400
    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({'success': False,
                        'message': f'Password must be at least {MIN_PASSWORD_LENGTH} characters'}), 400
    if User.query.filter(db.or_(User.username == username, User.email == email)).first():
        return jsonify({'success': False, 'message': 'Username or email already registered'}), 400

    try:
        user = User(username=username, email=email, role='customer')
        user.set_password(password)
        if business_name:
            if Vendor.query.filter(db.or_(Vendor.business_name == business_name, Vendor.email == email)).first():
                return jsonify({'success': False, 'message': 'Vendor already registered'}), 400
            vendor = Vendor(business_name=business_name, email=email,
                            contact_phone=(data.get('contact_phone') or '').strip() or None)
            db.session.add(vendor)
            db.session.flush()
            user.role = 'vendor'
            user.vendor_id = vendor.id
        db.session.add(user)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Registration failed for {username}: {e}", exc_info=True)
        return jsonify({'success': False, 'message': 'Registration failed'}), 500

    login_user(user)
    logger.info(f"Registered {user.role} account: {username}")
    return jsonify({'success': True, 'message': 'Registration successful', 'data': _user_payload(user)}), 201


@auth.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    logger.debug(f"Login attempt for username: {username}")

    if not username or not password:
        logger.warning(f"Login attempt with missing credentials for username: {username}")
        return jsonify({'success': False, 'message': 'Please enter both username and password'}), 400

    user = User.query.filter(db.or_(User.username == username, User.email == username.lower())).first()

    if user is None or not user.check_password(password):
        logger.warning(f"Failed login attempt for username: {username}")
        return jsonify({'success': False, 'message': 'Invalid username or password'}), 401

    if not user.is_active:
        logger.warning(f"Login attempt for disabled account: {username}")
        return jsonify({'success': False, 'message': 'Account is disabled'}), 403

    login_user(user, remember=bool(data.get('remember')))
    logger.info(f"Successful login for user: {username}")
    return jsonify({'success': True, 'message': f'Welcome, {user.username}!', 'data': _user_payload(user)})


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    username = current_user.username
    logout_user()
    logger.info(f"User logged out: {username}")
    return jsonify({'success': True, 'message': 'You have been logged out'})


@auth.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'data': _user_payload(current_user)})
