"""
Shared fixtures: an app bound to a throwaway SQLite file and media root,
plus small factories for users and tournaments.
"""

from datetime import datetime
from io import BytesIO

import pytest
from werkzeug.datastructures import FileStorage
from werkzeug.security import generate_password_hash

from odyssey import create_app
from odyssey.extensions import db
from odyssey.models.auth import User
from odyssey.models.tournaments import Tournament
from odyssey.utils.race_protection import reset_submission_locks
from odyssey.utils.registration_schema import clear_schema_cache


TEAM_FIELDS = [
    {'name': 'Team Name', 'type': 'text', 'required': True},
    {'name': 'Roster Photo', 'type': 'file', 'required': True},
]


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.sqlite3'}",
        'MEDIA_ROOT': str(tmp_path / 'media'),
        'WTF_CSRF_ENABLED': False,
        'RACE_PROTECTION_ENABLED': False,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
    clear_schema_cache()
    reset_submission_locks()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email='player@odyssey.gg', username='Player1', password='password123', role=0):
        with app.app_context():
            user = User(
                email=email,
                username=username,
                password=generate_password_hash(password),
                role=role,
            )
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make


@pytest.fixture
def make_admin(make_user):
    def _make(email='admin@odyssey.gg', username='Admin'):
        return make_user(email=email, username=username, role=2)
    return _make


@pytest.fixture
def make_tournament(app):
    def _make(fields=None, name='Odyssey Open', start_date=None, end_date=None, status=None):
        with app.app_context():
            tournament = Tournament(
                name=name,
                game='Valorant',
                prize=1000,
                participants=16,
                start_date=start_date or datetime(2026, 11, 1, 18, 0),
                end_date=end_date or datetime(2026, 11, 2, 18, 0),
                status=status,
            )
            if fields is not None:
                tournament.set_registration_fields(fields)
            db.session.add(tournament)
            db.session.commit()
            return tournament.id
    return _make


@pytest.fixture
def login(client):
    def _login(user_id, role=0):
        with client.session_transaction() as sess:
            sess['user_id'] = user_id
            sess['role'] = role
    return _login


def make_file(content=b'\x89PNG fake image', filename='roster photo.png', content_type='image/png'):
    return FileStorage(stream=BytesIO(content), filename=filename, content_type=content_type)
