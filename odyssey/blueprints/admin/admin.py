"""
Admin Blueprint

Back-office for tournament admins (role >= ADMIN_ROLE).

Key Features:
    - Tournament Creation: details plus a banner image upload
    - Tournament Status: upcoming/ongoing/past from the dates, admin override
    - Form Builder: define the registration fields of a tournament
    - Registration Management: joined registration table and CSV export
    - User Management: list accounts, delete an account and its registrations

Form Builder:
    The field list is replaced wholesale on every save. Field names must be
    unique within a tournament; the save is rejected otherwise.
"""

from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app, send_file

from odyssey.extensions import db
from odyssey.forms import TournamentForm, FieldDefinitionForm
from odyssey.models.auth import User
from odyssey.models.tournaments import Tournament, Registration, TOURNAMENT_STATUSES
from odyssey.models.deletion_utils import delete_user_safely, delete_tournament_safely, get_user_deletion_preview
from odyssey.utils.auth_helpers import admin_required
from odyssey.utils.race_protection import prevent_race_condition
from odyssey.utils.registration_fields import FieldDefinition, FIELD_TYPES
from odyssey.utils.registration_export import (
    fetch_identities, fetch_registrations, build_registration_table, export_csv, export_filename
)
from odyssey.utils.upload_storage import StorageError, get_upload_store

from datetime import datetime
from io import BytesIO
import pytz

EST = pytz.timezone('US/Eastern')

admin_bp = Blueprint('admin', __name__, template_folder='templates')


@admin_bp.route('/')
@admin_required
def index():
    """Overview counts for the dashboard."""
    stats = {
        'users': User.query.count(),
        'tournaments': Tournament.query.count(),
        'registrations': Registration.query.count(),
    }
    recent_users = User.query.order_by(User.created_at.desc()).limit(5).all()
    return render_template('admin/index.html', stats=stats, recent_users=recent_users)


@admin_bp.route('/tournaments')
@admin_required
def tournaments():
    all_tournaments = Tournament.query.order_by(Tournament.start_date.desc()).all()
    return render_template('admin/tournaments.html', tournaments=all_tournaments, statuses=TOURNAMENT_STATUSES)


@admin_bp.route('/tournaments/new', methods=['GET', 'POST'])
@admin_required
@prevent_race_condition(
    'add_tournament',
    min_interval=2.0,
    redirect_on_duplicate=lambda uid, form: redirect(url_for('admin.tournaments'))
)
def add_tournament():
    """
    Create a tournament.

    The banner is stored in the Tournament_photos upload folder and the
    tournament keeps its public path.
    """
    form = TournamentForm()

    if form.validate_on_submit():
        try:
            image_url = get_upload_store().save(form.photo.data, 'Tournament_photos')
        except StorageError as e:
            current_app.logger.error(f"Error uploading tournament banner: {e}")
            flash("Could not upload the tournament photo. Please try again.", "error")
            return render_template('admin/add_tournament.html', form=form)

        tournament = Tournament(
            name=form.name.data.strip(),
            game=form.game.data.strip(),
            prize=form.prize.data,
            participants=form.participants.data,
            start_date=form.start_date.data,
            end_date=form.end_date.data,
            description=form.description.data,
            image_url=image_url,
            created_at=datetime.now(EST),
        )
        db.session.add(tournament)
        db.session.commit()
        flash(f"Tournament {tournament.name} created.", "success")
        return redirect(url_for('admin.form_builder', tournament_id=tournament.id))

    return render_template('admin/add_tournament.html', form=form)


@admin_bp.route('/tournaments/<int:tournament_id>/delete', methods=['POST'])
@admin_required
def delete_tournament(tournament_id):
    result = delete_tournament_safely(tournament_id)
    if result.success:
        flash(result.get_summary(), "success")
    else:
        current_app.logger.error(f"Failed to delete tournament {tournament_id}: {result.errors}")
        flash("; ".join(result.errors), "error")
    return redirect(url_for('admin.tournaments'))


@admin_bp.route('/tournaments/<int:tournament_id>/status', methods=['POST'])
@admin_required
def set_tournament_status(tournament_id):
    """
    Override the displayed status of a tournament.

    Form Fields:
        status: upcoming, ongoing or past; empty to go back to the dates
    """
    tournament = db.get_or_404(Tournament, tournament_id)
    status = (request.form.get('status') or '').strip()

    if status and status not in TOURNAMENT_STATUSES:
        flash(f"Unknown tournament status {status}.", "error")
        return redirect(url_for('admin.tournaments'))

    tournament.status = status or None
    db.session.commit()
    current_app.logger.info(f"Tournament {tournament.id} status set to {tournament.status or 'automatic'}")
    flash(f"Tournament status has been set to {tournament.current_status}.", "success")
    return redirect(url_for('admin.tournaments'))


@admin_bp.route('/form_builder')
@admin_required
def form_builder_index():
    all_tournaments = Tournament.query.order_by(Tournament.name).all()
    return render_template('admin/form_builder_index.html', tournaments=all_tournaments)


def _save_fields(tournament, definitions):
    try:
        tournament.set_registration_fields(definitions)
    except ValueError as e:
        flash(str(e), "error")
        return False
    db.session.commit()
    current_app.logger.info(f"Registration form for tournament {tournament.id} saved ({len(definitions)} fields)")
    return True


@admin_bp.route('/form_builder/<int:tournament_id>', methods=['GET', 'POST'])
@admin_required
@prevent_race_condition(
    'form_builder',
    min_interval=1.0,
    use_form_hash=False,
    redirect_on_duplicate=lambda uid, form: redirect(url_for('admin.form_builder_index'))
)
def form_builder(tournament_id):
    """
    Edit the registration fields of a tournament.

    POST action=add:  append one field (FieldDefinitionForm) and save
    POST action=save: rewrite the existing rows (name, type, required,
                      remove) from the submitted lists and save
    """
    tournament = db.get_or_404(Tournament, tournament_id)
    add_form = FieldDefinitionForm(prefix='new')

    if request.method == 'POST':
        action = request.form.get('action')

        if action == 'add':
            if add_form.validate_on_submit():
                definitions = list(tournament.field_definitions)
                definitions.append(FieldDefinition(
                    name=add_form.name.data,
                    type=add_form.type.data,
                    required=add_form.required.data,
                ))
                if _save_fields(tournament, definitions):
                    flash("Registration form has been updated.", "success")
                    return redirect(url_for('admin.form_builder', tournament_id=tournament.id))
            else:
                for errors in add_form.errors.values():
                    for error in errors:
                        flash(error, "error")

        elif action == 'save':
            names = request.form.getlist('name')
            types = request.form.getlist('type')
            removed = set(request.form.getlist('remove'))

            definitions = []
            for i in range(len(names)):
                if str(i) in removed:
                    continue
                definitions.append(FieldDefinition(
                    name=names[i],
                    type=types[i] if i < len(types) else 'text',
                    required=request.form.get(f'required_{i}') == '1',
                ))
            if _save_fields(tournament, definitions):
                flash("Registration form has been updated.", "success")
                return redirect(url_for('admin.form_builder', tournament_id=tournament.id))

        else:
            flash("Unknown form action.", "error")

    return render_template(
        'admin/form_builder.html',
        tournament=tournament,
        fields=tournament.field_definitions,
        field_types=FIELD_TYPES,
        add_form=add_form,
    )


@admin_bp.route('/registrations')
@admin_required
def registrations_index():
    selected = request.args.get('tournament_id', type=int)
    if selected:
        return redirect(url_for('admin.view_registrations', tournament_id=selected))
    all_tournaments = Tournament.query.order_by(Tournament.name).all()
    return render_template('admin/registrations_index.html', tournaments=all_tournaments)


@admin_bp.route('/registrations/<int:tournament_id>')
@admin_required
def view_registrations(tournament_id):
    tournament = db.get_or_404(Tournament, tournament_id)
    table = build_registration_table(tournament, fetch_registrations(tournament), fetch_identities())
    all_tournaments = Tournament.query.order_by(Tournament.name).all()
    return render_template(
        'admin/registrations.html',
        tournament=tournament,
        tournaments=all_tournaments,
        table=table,
    )


@admin_bp.route('/registrations/<int:tournament_id>/export')
@admin_required
def export_registrations(tournament_id):
    tournament = db.get_or_404(Tournament, tournament_id)
    registrations = fetch_registrations(tournament)
    if not registrations:
        flash(f"No registrations found for {tournament.name}", "warning")
        return redirect(url_for('admin.view_registrations', tournament_id=tournament.id))

    table = build_registration_table(tournament, registrations, fetch_identities())
    output = BytesIO(export_csv(table).encode('utf-8'))

    return send_file(
        output,
        as_attachment=True,
        download_name=export_filename(tournament),
        mimetype='text/csv',
    )


@admin_bp.route('/users')
@admin_required
def users():
    identities = fetch_identities()
    return render_template('admin/users.html', users=identities)


@admin_bp.route('/users/<user_id>/delete', methods=['GET', 'POST'])
@admin_required
def delete_user(user_id):
    if request.method == 'POST':
        result = delete_user_safely(user_id)
        if result.success:
            flash(f"User deleted. {result.get_summary()}", "success")
        else:
            current_app.logger.error(f"Failed to delete user {user_id}: {result.errors}")
            flash("; ".join(result.errors), "error")
        return redirect(url_for('admin.users'))

    preview = get_user_deletion_preview(user_id)
    if preview is None:
        flash("User not found.", "error")
        return redirect(url_for('admin.users'))
    return render_template('admin/delete_user.html', preview=preview)
