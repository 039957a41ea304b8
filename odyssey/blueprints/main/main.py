"""Main Blueprint - landing page and stored media.

Uploaded files are served from MEDIA_ROOT:
    /uploads/<name>           registration files
    /<folder>/<name>          admin uploads, for folders in UPLOAD_FOLDERS
"""

from flask import Blueprint, render_template, abort, send_from_directory, current_app
import os

from odyssey.models.tournaments import Tournament, est_now
from odyssey.utils.auth_helpers import current_user
from odyssey.utils.upload_storage import REGISTRATION_FOLDER

main_bp = Blueprint('main', __name__, template_folder='templates')


@main_bp.route('/')
def index():
    """Landing page with the next few live or upcoming tournaments."""
    now = est_now()
    upcoming = [
        t for t in Tournament.query.order_by(Tournament.start_date).all()
        if t.status_at(now) != 'past'
    ][:3]
    return render_template('main/index.html', upcoming=upcoming, user=current_user())


@main_bp.route('/<folder>/<path:filename>')
def media(folder, filename):
    if folder != REGISTRATION_FOLDER and folder not in current_app.config['UPLOAD_FOLDERS']:
        abort(404)
    return send_from_directory(os.path.join(current_app.config['MEDIA_ROOT'], folder), filename)
