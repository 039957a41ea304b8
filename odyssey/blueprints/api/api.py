"""
API Blueprint

JSON endpoints used by the registration form, the admin back-office and
external clients. CSRF protection is disabled for this blueprint; callers
authenticate with the session cookie or an ``Authorization: Bearer`` ID token.

Routes:
    POST   /api/register          multipart tournament registration
    GET    /api/users             merged identity + profile records (admin)
    DELETE /api/users/<id>        delete a user and their registrations (admin)
    GET    /api/my-tournaments    tournaments the bearer has registered for
    POST   /api/upload            generic single-file upload (admin forms)
"""

from flask import Blueprint, request, jsonify, current_app

from odyssey.extensions import db
from odyssey.models.auth import User
from odyssey.models.tournaments import Tournament, Registration
from odyssey.models.deletion_utils import delete_user_safely
from odyssey.utils.auth_helpers import api_admin_required, bearer_user
from odyssey.utils.registration_service import process_registration, RegistrationError
from odyssey.utils.upload_storage import StorageError, get_upload_store

from sqlalchemy.exc import SQLAlchemyError

api_bp = Blueprint('api', __name__)


@api_bp.route('/register', methods=['POST'])
def register():
    """
    Create a registration from a multipart submission.

    Parts: tournamentId, userId, registrationFields (JSON), customData (JSON)
    and one file part per file field, named after the field.

    Returns:
        200 {"success": true, "registrationId", "customData"}
        400/404/409/500 {"success": false, "error"}
    """
    try:
        registration = process_registration(request.form, request.files)
    except RegistrationError as e:
        current_app.logger.warning(f"Registration rejected ({e.status_code}): {e.message}")
        return jsonify(e.to_dict()), e.status_code

    return jsonify({
        'success': True,
        'registrationId': registration.id,
        'customData': registration.custom_data,
    })


@api_bp.route('/users', methods=['GET'])
@api_admin_required
def list_users():
    try:
        users = User.query.order_by(User.created_at.desc()).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching users: {e}")
        return jsonify({'error': 'Failed to fetch users', 'details': str(e)}), 500
    return jsonify([user.to_identity() for user in users])


@api_bp.route('/users/<user_id>', methods=['DELETE'])
@api_admin_required
def delete_user(user_id):
    result = delete_user_safely(user_id)
    if not result.success:
        status = 404 if result.not_found else 500
        current_app.logger.error(f"Failed to delete user {user_id}: {result.errors}")
        return jsonify({'error': 'Failed to delete user', 'details': '; '.join(result.errors)}), status
    return jsonify({
        'success': True,
        'message': f"User {user_id} deleted successfully.",
        'deleted': result.deleted_counts,
    })


@api_bp.route('/my-tournaments', methods=['GET'])
def my_tournaments():
    """Tournaments the bearer registered for, newest start date first."""
    user = bearer_user()
    if user is None:
        return jsonify({'error': 'Unauthorized'}), 401

    try:
        tournaments = (
            Tournament.query
            .join(Registration, Registration.tournament_id == Tournament.id)
            .filter(Registration.user_id == user.id)
            .order_by(Tournament.start_date.desc())
            .all()
        )
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching tournaments for {user.id}: {e}")
        return jsonify({'error': 'Failed to fetch tournaments', 'details': str(e)}), 500

    return jsonify([t.to_dict() for t in tournaments])


@api_bp.route('/upload', methods=['POST'])
@api_admin_required
def upload():
    file = request.files.get('file')
    folder = request.form.get('folder') or 'Tournament_photos'

    if not file or not file.filename:
        return jsonify({'success': False, 'error': 'No file provided.'}), 400
    if folder not in current_app.config['UPLOAD_FOLDERS']:
        return jsonify({'success': False, 'error': f'Unknown upload folder {folder}.'}), 400

    try:
        url = get_upload_store().save(file, folder)
    except StorageError as e:
        current_app.logger.error(f"Error uploading file: {e}")
        return jsonify({'success': False, 'error': 'Failed to upload file.'}), 500

    return jsonify({'success': True, 'url': url})
