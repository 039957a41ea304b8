"""
Tests for the browser registration form at /tournaments/<id>/register.
"""

from io import BytesIO

from conftest import TEAM_FIELDS
from odyssey.models.tournaments import Registration
from odyssey.utils.registration_fields import parse_field_definitions
from odyssey.utils.registration_form import build_registration_form_class


def test_login_required(client, make_tournament):
    tournament_id = make_tournament(fields=TEAM_FIELDS)
    resp = client.get(f'/tournaments/{tournament_id}/register')
    assert resp.status_code == 302
    assert '/auth/login' in resp.headers['Location']


def test_form_renders_fields_in_order(client, make_user, make_tournament, login):
    fields = TEAM_FIELDS + [{'name': 'Seed', 'type': 'number', 'required': False}]
    tournament_id = make_tournament(fields=fields)
    login(make_user(username='Player1'))

    resp = client.get(f'/tournaments/{tournament_id}/register')

    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert html.index('Team Name') < html.index('Roster Photo') < html.index('Seed')
    assert 'type="file"' in html
    assert 'type="number"' in html
    assert 'value="Player1"' in html


def test_identity_email_is_prefilled_and_disabled():
    definitions = parse_field_definitions([
        {'name': 'Captain Email', 'type': 'email', 'required': True},
        {'name': 'Coach Email', 'type': 'email', 'required': False},
    ])
    form_class = build_registration_form_class(definitions, identity_email='captain@ghostsquad.gg')
    assert form_class.identity_email_field == 'field_0'

    form_class = build_registration_form_class(definitions)
    assert form_class.identity_email_field is None


def test_submit_creates_registration(app, client, make_user, make_tournament, login):
    tournament_id = make_tournament(fields=TEAM_FIELDS)
    user_id = make_user()
    login(user_id)

    resp = client.post(
        f'/tournaments/{tournament_id}/register',
        data={'field_0': 'Ghost Squad', 'field_1': (BytesIO(b'roster'), 'roster photo.png')},
        content_type='multipart/form-data',
        follow_redirects=True,
    )

    assert resp.status_code == 200
    assert 'Registration Successful!' in resp.get_data(as_text=True)
    with app.app_context():
        registration = Registration.query.filter_by(tournament_id=tournament_id, user_id=user_id).one()
        assert registration.custom_data['Team Name'] == 'Ghost Squad'
        assert registration.custom_data['Roster Photo'].startswith('/uploads/')


def test_submit_with_identity_email(app, client, make_user, make_tournament, login):
    fields = [{'name': 'Captain Email', 'type': 'email', 'required': True}]
    tournament_id = make_tournament(fields=fields)
    user_id = make_user(email='captain@ghostsquad.gg')
    login(user_id)

    resp = client.post(f'/tournaments/{tournament_id}/register', data={}, follow_redirects=True)

    assert resp.status_code == 200
    with app.app_context():
        registration = Registration.query.filter_by(user_id=user_id).one()
        assert registration.custom_data == {'Captain Email': 'captain@ghostsquad.gg'}


def test_invalid_submit_keeps_form(app, client, make_user, make_tournament, login):
    tournament_id = make_tournament(fields=TEAM_FIELDS)
    login(make_user())

    resp = client.post(
        f'/tournaments/{tournament_id}/register',
        data={'field_0': ''},
        content_type='multipart/form-data',
    )

    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert 'Team Name is required.' in html
    assert 'Roster Photo is required.' in html
    with app.app_context():
        assert Registration.query.count() == 0


def test_already_registered_redirects(app, client, make_user, make_tournament, login):
    fields = [{'name': 'Team Name', 'type': 'text', 'required': True}]
    tournament_id = make_tournament(fields=fields)
    login(make_user())

    first = client.post(f'/tournaments/{tournament_id}/register', data={'field_0': 'Ghost Squad'})
    assert first.status_code == 302

    resp = client.get(f'/tournaments/{tournament_id}/register', follow_redirects=True)
    assert 'already registered' in resp.get_data(as_text=True)
    with app.app_context():
        assert Registration.query.count() == 1
