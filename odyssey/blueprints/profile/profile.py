"""
Profile Blueprint

The signed-in player's own page: profile details, editable username and
avatar, and the tournaments they are registered for.
"""

from flask import Blueprint, render_template, redirect, url_for, flash

from odyssey.extensions import db
from odyssey.forms import ProfileForm
from odyssey.models.tournaments import Tournament, Registration
from odyssey.utils.auth_helpers import current_user, login_required

profile_bp = Blueprint('profile', __name__, template_folder='templates')


def registered_tournaments(user):
    """(tournament, registration) pairs for ``user``, newest start first."""
    return (
        db.session.query(Tournament, Registration)
        .join(Registration, Registration.tournament_id == Tournament.id)
        .filter(Registration.user_id == user.id)
        .order_by(Tournament.start_date.desc())
        .all()
    )


@profile_bp.route('/')
@login_required
def index():
    user = current_user()
    if user is None:
        return redirect(url_for('auth.logout'))
    return render_template(
        'profile/index.html',
        user=user,
        my_tournaments=registered_tournaments(user),
    )


@profile_bp.route('/edit', methods=['GET', 'POST'])
@login_required
def edit():
    user = current_user()
    if user is None:
        return redirect(url_for('auth.logout'))

    form = ProfileForm(obj=user)
    if form.validate_on_submit():
        user.username = form.username.data.strip()
        user.photo_url = form.photo_url.data or None
        db.session.commit()
        flash("Profile updated.", "success")
        return redirect(url_for('profile.index'))

    return render_template('profile/edit.html', form=form, user=user)
