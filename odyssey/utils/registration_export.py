"""Registration reporting - joins registrations with user identities.

Columns are "Username", "Registered At" followed by the tournament's
registration field names in form order. Rows follow store order. Users that
cannot be found (deleted, or the identity fetch failed) show as "Guest".
"""

from dataclasses import dataclass, field
from io import StringIO
from typing import Any, List
import csv
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..models.auth import User
from ..models.tournaments import Registration

logger = logging.getLogger(__name__)

BASE_COLUMNS = ["Username", "Registered At"]
GUEST = "Guest"
FILE_PREFIX = "/uploads/"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def is_file_value(value):
    return isinstance(value, str) and value.startswith(FILE_PREFIX)


@dataclass
class Cell:
    column: str
    value: Any

    @property
    def is_file(self):
        return is_file_value(self.value)

    @property
    def is_empty(self):
        return self.value is None or self.value == ''

    def as_text(self):
        return '' if self.value is None else str(self.value)


@dataclass
class Row:
    registration: Registration
    username: str
    cells: List[Cell] = field(default_factory=list)

    def values(self):
        return [self.username, self.registered_at_text()] + [c.as_text() for c in self.cells]

    def registered_at_text(self):
        registered_at = self.registration.registered_at
        return registered_at.strftime(TIMESTAMP_FORMAT) if registered_at else ''


@dataclass
class RegistrationTable:
    tournament: Any
    columns: List[str]
    rows: List[Row]


def fetch_identities():
    """All merged identity/profile records; [] if the lookup fails."""
    try:
        users = User.query.order_by(User.created_at.desc()).all()
    except SQLAlchemyError as e:
        logger.warning("Could not load users for registration view: %s", e)
        return []
    return [user.to_identity() for user in users]


def fetch_registrations(tournament):
    return Registration.query.filter_by(tournament_id=tournament.id).order_by(Registration.id).all()


def build_registration_table(tournament, registrations, identities):
    usernames = {identity['id']: identity.get('username') for identity in identities}
    definitions = tournament.field_definitions
    columns = BASE_COLUMNS + [d.name for d in definitions]

    rows = []
    for registration in registrations:
        custom_data = registration.custom_data or {}
        row = Row(
            registration=registration,
            username=usernames.get(registration.user_id) or GUEST,
        )
        for definition in definitions:
            value = custom_data.get(definition.name)
            row.cells.append(Cell(definition.name, '' if value is None else value))
        rows.append(row)
    return RegistrationTable(tournament=tournament, columns=columns, rows=rows)


def export_csv(table):
    """CSV text with every value quoted and embedded quotes doubled."""
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(table.columns)
    for row in table.rows:
        writer.writerow(row.values())
    return output.getvalue()


def export_filename(tournament):
    return f"{tournament.name}_registrations.csv"
