"""Registration processing - the server side of tournament sign-up.

process_registration() takes the multipart parts produced by
submission_encoder (from /api/register or the browser form) and either
creates exactly one Registration or raises a RegistrationError.

Processing order:
    1. All four parts present (tournamentId, userId, registrationFields,
       customData) and decodable, else 400
    2. Tournament exists (404) and the user has no registration yet (409)
    3. Scalar values re-validated with the compiled schema (400)
    4. Every required file field has a part (400, nothing written)
    5. Files staged, record committed, files promoted

Any storage or database failure rolls back the session and deletes every
file staged by the request, so a failed registration leaves nothing behind.
"""

from datetime import datetime
import json
import logging

import pytz
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models.tournaments import Tournament, Registration
from .registration_fields import parse_field_definitions, validate_field_definitions
from .registration_schema import generate_schema
from .upload_storage import StorageError, get_upload_store

logger = logging.getLogger(__name__)

EST = pytz.timezone('US/Eastern')

REQUIRED_PARTS = ('tournamentId', 'userId', 'registrationFields', 'customData')


class RegistrationError(Exception):
    status_code = 400

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        return {'success': False, 'error': self.message}


class MissingPartError(RegistrationError):
    pass


class InvalidSubmissionError(RegistrationError):
    pass


class RequiredFileMissingError(RegistrationError):
    pass


class DuplicateRegistrationError(RegistrationError):
    status_code = 409


class TournamentNotFoundError(RegistrationError):
    status_code = 404


class RegistrationStorageError(RegistrationError):
    status_code = 500


def _decode_parts(form):
    missing = [part for part in REQUIRED_PARTS if not form.get(part)]
    if missing:
        raise MissingPartError(
            "Missing required form data or user not authenticated "
            f"({', '.join(missing)})."
        )

    try:
        raw_fields = json.loads(form['registrationFields'])
        custom_data = json.loads(form['customData'])
    except json.JSONDecodeError:
        raise InvalidSubmissionError("registrationFields and customData must be valid JSON.")

    try:
        definitions = parse_field_definitions(raw_fields)
        validate_field_definitions(definitions, allow_unknown_types=True)
    except ValueError as e:
        raise InvalidSubmissionError(str(e))

    if not isinstance(custom_data, dict):
        raise InvalidSubmissionError("customData must be an object.")

    try:
        tournament_id = int(form['tournamentId'])
    except (TypeError, ValueError):
        raise InvalidSubmissionError("tournamentId is not valid.")

    return tournament_id, form['userId'], definitions, custom_data


def find_registration(tournament_id, user_id):
    return Registration.query.filter_by(tournament_id=tournament_id, user_id=str(user_id)).first()


def process_registration(form, files, store=None):
    """Validate and persist one registration.

    Args:
        form: mapping of the non-file parts
        files: mapping of field name to uploaded file (FileStorage)
        store: UploadStore to write files to (defaults to MEDIA_ROOT)

    Returns:
        The new Registration

    Raises:
        RegistrationError: subclass carrying the HTTP status to answer with
    """
    tournament_id, user_id, definitions, custom_data = _decode_parts(form)

    tournament = db.session.get(Tournament, tournament_id)
    if tournament is None:
        raise TournamentNotFoundError(f"Tournament {tournament_id} not found.")

    schema = generate_schema(definitions)

    scalars = schema.validate_scalars(custom_data)
    if not scalars.is_valid:
        first = scalars.errors[0]
        logger.warning("Rejected registration for tournament %s user %s: %s",
                       tournament_id, user_id, first.message)
        raise InvalidSubmissionError(first.message, field=first.field)

    uploads = schema.check_uploads(files)
    if not uploads.is_valid:
        first = uploads.errors[0]
        logger.warning("Rejected registration for tournament %s user %s: %s",
                       tournament_id, user_id, first.message)
        raise RequiredFileMissingError(first.message, field=first.field)

    if find_registration(tournament_id, user_id) is not None:
        raise DuplicateRegistrationError("You are already registered for this tournament.")

    final_data = dict(scalars.values)
    batch = None
    if uploads.values:
        batch = (store or get_upload_store()).batch()

    try:
        for definition in schema.file_fields:
            upload = uploads.values.get(definition.name)
            if upload is not None:
                final_data[definition.name] = batch.stage(definition.name, upload)

        registration = Registration(
            tournament_id=tournament_id,
            user_id=str(user_id),
            custom_data=final_data,
            registered_at=datetime.now(EST),
        )
        db.session.add(registration)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if batch is not None:
            batch.rollback()
        raise DuplicateRegistrationError("You are already registered for this tournament.")
    except (StorageError, SQLAlchemyError) as e:
        db.session.rollback()
        if batch is not None:
            batch.rollback()
        logger.error("Error processing registration for tournament %s: %s", tournament_id, e)
        raise RegistrationStorageError(f"Failed to process registration: {e}")

    if batch is not None:
        try:
            batch.commit()
        except StorageError as e:
            logger.error("Error finalizing uploads for registration %s: %s", registration.id, e)
            db.session.delete(registration)
            db.session.commit()
            batch.rollback()
            raise RegistrationStorageError(f"Failed to process registration: {e}")

    logger.info("Registration %s created for tournament %s user %s",
                registration.id, tournament_id, user_id)
    return registration
