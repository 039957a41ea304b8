"""
Authentication Blueprint

Local identity provider for the platform: sign-up, login and logout for
browser sessions, plus an ID-token exchange for API clients.

Routes:
    /auth/register  create an account (email, username, password)
    /auth/login     start a session
    /auth/logout    clear the session
    /auth/token     POST email+password, receive a bearer ID token
"""

from flask import Blueprint, render_template, request, redirect, url_for, flash, session, jsonify, current_app

from odyssey.extensions import db, csrf
from odyssey.models.auth import User
from odyssey.utils.auth_helpers import issue_id_token
from odyssey.utils.race_protection import prevent_race_condition

from werkzeug.security import generate_password_hash, check_password_hash
from urllib.parse import urlparse

auth_bp = Blueprint('auth', __name__, template_folder='templates')


def _safe_next(next_url):
    """Only allow relative redirects after login."""
    if not next_url:
        return None
    # Browsers read "//host" and "/\host" as protocol-relative URLs.
    if next_url.startswith('//') or '\\' in next_url:
        return None
    parsed = urlparse(next_url)
    if parsed.scheme or parsed.netloc:
        return None
    return next_url


def authenticate(email, password):
    if not email or not password:
        return None
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user and check_password_hash(user.password, password):
        return user
    return None


@auth_bp.route('/logout')
def logout():
    session.clear()
    return redirect(url_for('auth.login'))


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """
    Handle user login.

    GET: Display login form
    POST: Authenticate credentials and create session, then follow 'next'
    """
    next_url = _safe_next(request.args.get('next') or request.form.get('next'))

    if request.method == 'POST':
        user = authenticate(request.form.get('email'), request.form.get('password'))

        if user:
            session['user_id'] = user.id
            session['role'] = user.role
            flash("Logged in successfully!", "success")
            return redirect(next_url or url_for('profile.index'))

        current_app.logger.info("Failed login attempt")
        flash("Invalid email or password", "error")

    return render_template('auth/login.html', next_url=next_url)


@auth_bp.route('/register', methods=['GET', 'POST'])
@prevent_race_condition('registration', min_interval=2.0, redirect_on_duplicate=lambda uid, form: redirect(url_for('auth.register')))
def register():
    """
    Create a player account.

    Form Fields:
        - email, username, password, confirm_password
    """
    if request.method == 'POST':
        email = (request.form.get('email') or '').strip().lower()
        username = (request.form.get('username') or '').strip()
        password = request.form.get('password') or ''
        confirm_password = request.form.get('confirm_password') or ''

        if not all([email, username, password, confirm_password]):
            flash("All fields are required.", "error")
            return render_template('auth/register.html', email=email, username=username)

        if password != confirm_password:
            flash("Passwords do not match", "error")
            return render_template('auth/register.html', email=email, username=username)

        if User.query.filter_by(email=email).first():
            flash("An account with this email already exists.", "error")
            return render_template('auth/register.html', email=email, username=username)

        user = User(email=email, username=username, password=generate_password_hash(password))
        db.session.add(user)
        db.session.commit()
        current_app.logger.info(f"Created account {user.id}")

        session['user_id'] = user.id
        session['role'] = user.role
        flash("Account created!", "success")
        return redirect(url_for('profile.index'))

    return render_template('auth/register.html')


@auth_bp.route('/token', methods=['POST'])
@csrf.exempt
def token():
    """Exchange credentials for a bearer ID token."""
    data = request.get_json(silent=True) or request.form
    user = authenticate(data.get('email'), data.get('password'))
    if user is None:
        return jsonify({'error': 'Invalid email or password'}), 401
    return jsonify({
        'idToken': issue_id_token(user),
        'expiresIn': current_app.config['ID_TOKEN_MAX_AGE'],
        'uid': user.id,
    })
