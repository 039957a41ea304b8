"""
Race condition protection utilities for form submissions.

Blocks a second submission of the same form from the same session while the
first is still being processed, and throttles rapid resubmits (double
clicks). Different sessions are not serialized here; the database unique
constraints are the authority for those.
"""

from functools import wraps
from flask import request, flash, redirect, url_for, session, current_app
from sqlalchemy import exc
import hashlib
import time
from threading import Lock
from collections import defaultdict

# Format: {user_id: {form_type: {'lock': Lock(), 'last_submit': timestamp, 'last_hash': str}}}
_submission_locks = defaultdict(lambda: defaultdict(lambda: {'lock': Lock(), 'last_submit': 0, 'last_hash': None}))

_lock_cleanup_interval = 3600  # 1 hour
_last_cleanup = time.time()

# Guards creation and removal of entries in _submission_locks
_registry_lock = Lock()


def _cleanup_old_locks():
    """Remove locks that haven't been used in over an hour."""
    global _last_cleanup
    current_time = time.time()

    if current_time - _last_cleanup < _lock_cleanup_interval:
        return

    cutoff_time = current_time - _lock_cleanup_interval
    with _registry_lock:
        for user_id in list(_submission_locks):
            form_locks = _submission_locks[user_id]
            for form_type in list(form_locks):
                lock_info = form_locks[form_type]
                if lock_info['last_submit'] < cutoff_time and not lock_info['lock'].locked():
                    del form_locks[form_type]
            if not form_locks:
                del _submission_locks[user_id]

    _last_cleanup = current_time


def reset_submission_locks():
    with _registry_lock:
        _submission_locks.clear()


def _lock_info(user_id, form_type):
    """Entry for (user, form), created at most once across threads."""
    with _registry_lock:
        return _submission_locks[user_id][form_type]


def _generate_form_hash(form_data, exclude_fields=None):
    """
    Generate a hash of form data to detect duplicate submissions.

    Args:
        form_data: The form data dictionary (``to_dict(flat=False)``)
        exclude_fields: Fields to leave out of the hash (e.g. CSRF tokens)

    Returns:
        str: SHA256 hash of the form data
    """
    exclude_fields = exclude_fields or ['csrf_token', 'submit', '_']

    form_items = []
    for key, value in sorted(form_data.items()):
        if key not in exclude_fields:
            if isinstance(value, list):
                form_items.append(f"{key}={'|'.join(sorted(str(v) for v in value))}")
            else:
                form_items.append(f"{key}={value}")

    form_string = '&'.join(form_items)
    return hashlib.sha256(form_string.encode()).hexdigest()


def prevent_race_condition(form_type, min_interval=1.0, use_form_hash=True, redirect_on_duplicate=None):
    """
    Decorator to prevent race conditions on form submissions.

    Args:
        form_type (str): Identifier for the form type (e.g. 'tournament_registration')
        min_interval (float): Minimum seconds between submissions for same user/form
        use_form_hash (bool): Whether to reject an identical resubmit within 60s
        redirect_on_duplicate (function): Optional ``(user_id, form_data) -> Response``

    Usage:
        @tournaments_bp.route('/<int:tournament_id>/register', methods=['GET', 'POST'])
        @prevent_race_condition('tournament_registration', min_interval=1.5)
        def register(tournament_id):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if request.method != 'POST' or not current_app.config.get('RACE_PROTECTION_ENABLED', True):
                return func(*args, **kwargs)

            _cleanup_old_locks()

            user_id = session.get('user_id')
            if not user_id:
                user_id = f"ip_{request.remote_addr}"

            def _bounce():
                if redirect_on_duplicate:
                    return redirect_on_duplicate(user_id, request.form)
                return redirect(request.referrer or url_for('main.index'))

            lock_info = _lock_info(user_id, form_type)
            lock = lock_info['lock']

            if not lock.acquire(blocking=False):
                flash(f"Please wait - your previous {form_type.replace('_', ' ')} is still being processed.", "warning")
                return _bounce()

            try:
                current_time = time.time()
                last_submit = lock_info['last_submit']

                if current_time - last_submit < min_interval:
                    time_left = min_interval - (current_time - last_submit)
                    flash(f"Please wait {time_left:.1f} more seconds before submitting again.", "warning")
                    return _bounce()

                if use_form_hash:
                    current_hash = _generate_form_hash(request.form.to_dict(flat=False))
                    if lock_info['last_hash'] == current_hash and current_time - last_submit < 60:
                        flash(f"This {form_type.replace('_', ' ')} was already submitted. Please wait before resubmitting.", "warning")
                        return _bounce()
                    lock_info['last_hash'] = current_hash

                lock_info['last_submit'] = current_time

                try:
                    return func(*args, **kwargs)
                except exc.IntegrityError as e:
                    from odyssey.extensions import db
                    db.session.rollback()

                    error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
                    current_app.logger.warning(f"Integrity error on {form_type}: {error_msg}")
                    if 'UNIQUE constraint failed' in error_msg or 'duplicate key' in error_msg.lower():
                        flash(f"This {form_type.replace('_', ' ')} already exists. Please check your data.", "error")
                    else:
                        flash("A database error occurred. Please try again.", "error")
                    return _bounce()

            finally:
                lock.release()

        return wrapper
    return decorator
