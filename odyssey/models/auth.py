"""Identity and Profile Models - user accounts for the platform.

A User row is both the identity record (email, password hash, creation time)
and the profile document (username, photo) for one player or admin. The id is
an opaque string uid so registrations can reference users by identifier only.

Roles:
    - 0: Regular player (default)
    - 2+: Admin (back-office access)
"""

from ..extensions import db
from datetime import datetime
import uuid
import pytz

EST = pytz.timezone('US/Eastern')


def _new_uid():
    return uuid.uuid4().hex


class User(db.Model):
    """Player or admin account.

    Columns:
        id: Opaque uid (String, 64 chars)
        email: Login email, unique
        username: Display name shown on registrations and exports
        photo_url: Optional avatar path or URL
        password: Werkzeug password hash
        role: Authorization level (0 player, 2+ admin)
        created_at: Account creation time (EST)
    """
    id = db.Column(db.String(64), primary_key=True, default=_new_uid)
    email = db.Column(db.String(255), unique=True, nullable=False)
    username = db.Column(db.String(255), nullable=True)
    photo_url = db.Column(db.String(512), nullable=True)
    password = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(EST), nullable=False)

    @property
    def display_name(self):
        return self.username or self.email or 'N/A'

    def is_admin(self, admin_role=2):
        return (self.role or 0) >= admin_role

    def to_identity(self):
        """Merged identity + profile record as served by the users API."""
        return {
            'id': self.id,
            'email': self.email or '',
            'username': self.display_name,
            'photoURL': self.photo_url,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id} {self.email}>"
