"""Tournament Models - tournaments, their registration forms and registrations.

Key Models:
    Tournament: Tournament details plus the admin-defined registration fields
    Registration: One user's completed sign-up for one tournament

Registration Form:
    - Stored on the tournament as an ordered JSON list (registration_fields)
    - Replaced wholesale on every save from the form builder
    - Field names are unique within one tournament

Registrations:
    - Belong to a tournament (deleted with it)
    - Reference the user by id only (no foreign key)
    - custom_data maps field name to the submitted value or, for file
      fields, the public path of the stored upload
    - At most one registration per (tournament, user)
"""

from ..extensions import db
from ..utils.registration_fields import (
    FieldDefinition, parse_field_definitions, validate_field_definitions, fields_fingerprint
)
from datetime import datetime
import pytz

# Define EST timezone
EST = pytz.timezone('US/Eastern')

TOURNAMENT_STATUSES = ('upcoming', 'ongoing', 'past')


def est_now():
    """Current EST wall-clock time, naive like the stored dates."""
    return datetime.now(EST).replace(tzinfo=None)


class Tournament(db.Model):
    """Tournament listing with its registration form definition.

    Columns:
        id: Primary key
        name: Tournament name
        game: Game title
        prize: Prize pool
        participants: Participant cap
        start_date / end_date: Tournament window
        description: Free text
        image_url: Banner path returned by the upload API
        status: Admin override (upcoming, ongoing, past); NULL means derive from dates
        registration_fields: JSON list of {name, type, required} (nullable)
        created_at: When tournament created (EST)
    """
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    game = db.Column(db.String(255), nullable=True)
    prize = db.Column(db.Float, default=0, nullable=False)
    participants = db.Column(db.Integer, default=2, nullable=False)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)
    registration_fields = db.Column(db.JSON, nullable=True)
    status = db.Column(db.String(16), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(EST), nullable=False)

    registrations = db.relationship(
        'Registration',
        backref='tournament',
        cascade='all, delete-orphan',
        order_by='Registration.id',
    )

    def status_at(self, now):
        if self.status in TOURNAMENT_STATUSES:
            return self.status
        if self.end_date < now:
            return 'past'
        if self.start_date > now:
            return 'upcoming'
        return 'ongoing'

    @property
    def current_status(self):
        """Stored override if set, otherwise upcoming/ongoing/past by date."""
        return self.status_at(est_now())

    @property
    def field_definitions(self):
        return parse_field_definitions(self.registration_fields or [])

    @property
    def fields_version(self):
        return fields_fingerprint(self.field_definitions)

    def set_registration_fields(self, definitions):
        """Replace the whole field list.

        Args:
            definitions: iterable of FieldDefinition or dicts

        Raises:
            ValueError: blank or duplicate names, unknown types
        """
        cleaned = []
        for definition in definitions:
            if not isinstance(definition, FieldDefinition):
                definition = FieldDefinition.from_dict(definition)
            cleaned.append(FieldDefinition(
                name=definition.name.strip(),
                type=definition.type,
                required=definition.required,
            ))
        validate_field_definitions(cleaned)
        self.registration_fields = [d.to_dict() for d in cleaned]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'game': self.game,
            'prize': self.prize,
            'participants': self.participants,
            'description': self.description,
            'imageUrl': self.image_url,
            'startDate': self.start_date.isoformat() if self.start_date else None,
            'endDate': self.end_date.isoformat() if self.end_date else None,
            'status': self.current_status,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'registrationFields': list(self.registration_fields or []),
        }


class Registration(db.Model):
    """A user's registration for a tournament.

    Columns:
        id: Primary key (store order is id order)
        tournament_id: Owning tournament (foreign key, cascade)
        user_id: Registrant uid (no foreign key)
        custom_data: JSON mapping of field name to value or file path
        registered_at: Server-assigned creation time (EST)
    """
    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'user_id', name='uq_registration_tournament_user'),
    )

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey('tournament.id', ondelete='CASCADE'), nullable=False, index=True
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    custom_data = db.Column(db.JSON, nullable=False, default=dict)
    registered_at = db.Column(db.DateTime, default=lambda: datetime.now(EST), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'tournamentId': self.tournament_id,
            'userId': self.user_id,
            'customData': dict(self.custom_data or {}),
            'registeredAt': self.registered_at.isoformat() if self.registered_at else None,
        }
