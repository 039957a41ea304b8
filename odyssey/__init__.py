import logging
import os
from flask import Flask, jsonify, render_template, request
from flask_migrate import Migrate
from dotenv import load_dotenv

from .extensions import db, csrf
from .models.auth import User
from .models.tournaments import Tournament, Registration

load_dotenv()  # This will load variables from .env into the environment


def create_app(test_config=None):
    app = Flask(__name__)

    logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO'))

    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite:///db.sqlite3')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.getenv('FLASK_SECRET_KEY', 'default-secret')
    app.config['MEDIA_ROOT'] = os.getenv('MEDIA_ROOT', os.path.join(app.instance_path, 'media'))
    app.config['MAX_CONTENT_LENGTH'] = int(os.getenv('MAX_UPLOAD_MB', '16')) * 1024 * 1024
    app.config['ID_TOKEN_MAX_AGE'] = int(os.getenv('ID_TOKEN_MAX_AGE', '3600'))
    app.config['UPLOAD_FOLDERS'] = ('Tournament_photos', 'Blog_photos')
    app.config['ADMIN_ROLE'] = 2

    if test_config:
        app.config.update(test_config)

    db.init_app(app)
    csrf.init_app(app)
    Migrate(app, db)

    from odyssey.blueprints.auth.auth import auth_bp
    from odyssey.blueprints.profile.profile import profile_bp
    from odyssey.blueprints.tournaments.tournaments import tournaments_bp
    from odyssey.blueprints.admin.admin import admin_bp
    from odyssey.blueprints.api.api import api_bp
    from odyssey.blueprints.main.main import main_bp

    csrf.exempt(api_bp)

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(profile_bp, url_prefix='/profile')
    app.register_blueprint(tournaments_bp, url_prefix='/tournaments')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(main_bp, url_prefix='/')

    @app.errorhandler(404)
    def page_not_found(error):
        if request.path.startswith('/api/'):
            return jsonify({'success': False, 'error': 'Not found'}), 404
        return render_template('404.html'), 404

    @app.errorhandler(413)
    def too_large(error):
        if request.path.startswith('/api/'):
            return jsonify({'success': False, 'error': 'Upload too large'}), 413
        return render_template('500.html', message='Upload too large'), 413

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        if request.path.startswith('/api/'):
            return jsonify({'success': False, 'error': 'Internal Server Error'}), 500
        return render_template('500.html'), 500

    with app.app_context():
        db.create_all()

    app.logger.info(f"Using media root: {app.config['MEDIA_ROOT']}")
    return app
