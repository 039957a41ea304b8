"""
Utility functions for safely deleting users and tournaments with their related data.

Registrations reference users by id only, so deleting a user has to remove
that user's registrations across every tournament explicitly.
"""

from ..extensions import db
from .auth import User
from .tournaments import Tournament, Registration
from sqlalchemy.exc import SQLAlchemyError
import logging

logger = logging.getLogger(__name__)


class DeletionResult:
    """Class to track deletion results and statistics"""
    def __init__(self):
        self.success = True
        self.not_found = False
        self.errors = []
        self.deleted_counts = {}

    def add_deleted(self, model_name, count):
        self.deleted_counts[model_name] = self.deleted_counts.get(model_name, 0) + count

    def add_error(self, error_msg):
        self.success = False
        self.errors.append(error_msg)

    def get_summary(self):
        if self.success:
            total_deleted = sum(self.deleted_counts.values())
            return f"Successfully deleted {total_deleted} records across {len(self.deleted_counts)} tables"
        else:
            return f"Deletion failed with {len(self.errors)} errors"


def delete_user_safely(user_id):
    """
    Delete a user account, its profile, and every registration it made.
    Returns DeletionResult object with success status and details.
    """
    result = DeletionResult()

    try:
        user = db.session.get(User, user_id)
        if not user:
            result.not_found = True
            result.add_error(f"User with ID {user_id} not found")
            return result

        registrations = Registration.query.filter_by(user_id=user_id).all()
        for registration in registrations:
            db.session.delete(registration)
        result.add_deleted('Registration', len(registrations))

        db.session.delete(user)
        result.add_deleted('User', 1)

        db.session.commit()
        logger.info("Deleted user %s and %d registration(s)", user_id, len(registrations))

    except SQLAlchemyError as e:
        db.session.rollback()
        result.add_error(f"Error deleting user: {e}")

    return result


def get_user_deletion_preview(user_id):
    """Counts of what delete_user_safely() would remove, or None."""
    user = db.session.get(User, user_id)
    if not user:
        return None
    registrations = Registration.query.filter_by(user_id=user_id).all()
    return {
        'user': user,
        'registrations': len(registrations),
        'tournaments': sorted({r.tournament.name for r in registrations if r.tournament}),
    }


def delete_tournament_safely(tournament_id):
    """Delete a tournament with its registrations (uploaded files are kept)."""
    result = DeletionResult()

    try:
        tournament = db.session.get(Tournament, tournament_id)
        if not tournament:
            result.not_found = True
            result.add_error(f"Tournament with ID {tournament_id} not found")
            return result

        result.add_deleted('Registration', len(tournament.registrations))
        db.session.delete(tournament)
        result.add_deleted('Tournament', 1)
        db.session.commit()

    except SQLAlchemyError as e:
        db.session.rollback()
        result.add_error(f"Error deleting tournament: {e}")

    return result
