"""
Tournaments Blueprint

Public tournament browsing and the registration form players fill in.

Key Features:
    - Tournament list split into upcoming and past
    - Tournament detail page
    - Registration form built from the tournament's admin-defined fields

Registration Workflow:
    1. Admin defines registration fields in the form builder
    2. Player opens /tournaments/<id>/register (must be logged in)
    3. Form is rendered from the compiled schema, username shown read-only
    4. On submit the values are validated against the schema, encoded into
       the multipart shape of /api/register and processed server-side
    5. Success redirects to the tournament page; failures keep the form
"""

from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app

from odyssey.extensions import db
from odyssey.models.tournaments import Tournament, TOURNAMENT_STATUSES, est_now
from odyssey.utils.auth_helpers import current_user, redirect_to_login
from odyssey.utils.race_protection import prevent_race_condition
from odyssey.utils.registration_form import build_registration_form
from odyssey.utils.registration_schema import compile_schema
from odyssey.utils.registration_service import process_registration, find_registration, RegistrationError
from odyssey.utils.submission_encoder import encode_submission, SubmissionEncodingError

tournaments_bp = Blueprint('tournaments', __name__, template_folder='templates')


@tournaments_bp.route('/')
def index():
    """List tournaments grouped by status: live, upcoming (soonest first), past (latest first)."""
    now = est_now()
    grouped = {status: [] for status in TOURNAMENT_STATUSES}
    for tournament in Tournament.query.order_by(Tournament.start_date).all():
        grouped[tournament.status_at(now)].append(tournament)
    grouped['past'].reverse()

    return render_template(
        'tournaments/index.html',
        ongoing=grouped['ongoing'],
        upcoming=grouped['upcoming'],
        past=grouped['past'],
        user=current_user(),
    )


@tournaments_bp.route('/<int:tournament_id>')
def view(tournament_id):
    tournament = db.get_or_404(Tournament, tournament_id)
    user = current_user()
    registration = find_registration(tournament.id, user.id) if user else None
    return render_template(
        'tournaments/view.html',
        tournament=tournament,
        user=user,
        registration=registration,
    )


@tournaments_bp.route('/<int:tournament_id>/register', methods=['GET', 'POST'])
@prevent_race_condition(
    'tournament_registration',
    min_interval=1.5,
    use_form_hash=False,
    redirect_on_duplicate=lambda uid, form: redirect(
        url_for('tournaments.register', tournament_id=request.view_args.get('tournament_id'))
    )
)
def register(tournament_id):
    """
    Render and submit the tournament registration form.

    GET: Form with one control per registration field
    POST: Validate against the compiled schema, then create the registration

    Returns:
        GET / failed POST: Rendered form (errors shown per field)
        POST success: Redirect to the tournament page
    """
    user = current_user()
    if user is None:
        return redirect_to_login("You must be logged in to register.")

    tournament = db.get_or_404(Tournament, tournament_id)
    schema = compile_schema(tournament)
    form = build_registration_form(schema.fields, user)

    if find_registration(tournament.id, user.id) is not None:
        flash("You are already registered for this tournament.", "info")
        return redirect(url_for('tournaments.view', tournament_id=tournament.id))

    if form.validate_on_submit():
        result = form.validate_custom_data(schema)
        if not result.is_valid:
            flash("Please fix the highlighted fields.", "error")
        else:
            try:
                payload = encode_submission(tournament.id, user, schema.fields, result.values)
                process_registration(payload.form, payload.files)
            except SubmissionEncodingError as e:
                flash(str(e), "error")
            except RegistrationError as e:
                current_app.logger.warning(
                    f"Registration for tournament {tournament.id} by {user.id} failed: {e.message}"
                )
                if e.field:
                    form.add_field_error(e.field, e.message)
                flash(f"Registration Failed: {e.message}", "error")
            else:
                flash("Registration Successful! You have successfully registered for the tournament.", "success")
                return redirect(url_for('tournaments.view', tournament_id=tournament.id))
    elif request.method == 'POST':
        for errors in form.errors.values():
            for error in errors:
                flash(error, "error")

    return render_template('tournaments/register.html', tournament=tournament, form=form, user=user)
