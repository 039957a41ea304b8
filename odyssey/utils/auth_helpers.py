"""
Authentication Helper Utilities

Session helpers for browser routes (login redirects with 'next' support,
admin checks) and signed ID tokens for API callers that send
``Authorization: Bearer <token>``.
"""

from functools import wraps
from flask import session, redirect, url_for, request, flash, current_app, jsonify
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from odyssey.extensions import db
from odyssey.models.auth import User

TOKEN_SALT = 'odyssey-id-token'


def current_user():
    """Return the signed-in User or None."""
    user_id = session.get('user_id')
    if not user_id:
        return None
    return db.session.get(User, user_id)


def login_required(f):
    """
    Decorator to require login for a route.

    If user is not logged in, redirects to login page with 'next' parameter
    set to the current URL so user can be redirected back after login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return redirect_to_login("Please log in to access this page.")
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator for back-office routes (role >= ADMIN_ROLE)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user()
        if user is None:
            return redirect_to_login("Please log in")
        if not user.is_admin(current_app.config['ADMIN_ROLE']):
            flash("You are not authorized to access this page", "error")
            return redirect(url_for('tournaments.index'))
        return f(*args, **kwargs)
    return decorated_function


def redirect_to_login(message="Please log in", next_url=None):
    """
    Helper function to redirect to login with optional next parameter.

    Args:
        message (str): Flash message to display
        next_url (str, optional): URL to redirect to after successful login.
                                 If None, uses request path (relative URL)
    """
    if message:
        flash(message, "error")

    if next_url is None:
        next_url = request.full_path if request.query_string else request.path

    return redirect(url_for('auth.login', next=next_url))


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_id_token(user):
    return _serializer().dumps({'uid': user.id})


def verify_id_token(token):
    """Return the uid inside ``token`` or None if it is invalid or expired."""
    try:
        data = _serializer().loads(token, max_age=current_app.config['ID_TOKEN_MAX_AGE'])
    except SignatureExpired:
        current_app.logger.warning("Expired ID token presented")
        return None
    except BadSignature:
        current_app.logger.warning("Invalid ID token presented")
        return None
    return data.get('uid') if isinstance(data, dict) else None


def bearer_user():
    """Resolve the User from an ``Authorization: Bearer`` header."""
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    uid = verify_id_token(header[len('Bearer '):].strip())
    if not uid:
        return None
    return db.session.get(User, uid)


def api_admin_required(f):
    """Admin check for JSON routes: admin session or admin bearer token."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user() or bearer_user()
        if user is None:
            return jsonify({'error': 'Unauthorized'}), 401
        if not user.is_admin(current_app.config['ADMIN_ROLE']):
            return jsonify({'error': 'Forbidden'}), 403
        return f(*args, **kwargs)
    return decorated_function
