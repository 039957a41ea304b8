"""
Tests for the registration table and CSV export.
"""

from datetime import datetime
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from odyssey.extensions import db
from odyssey.models.tournaments import Tournament, Registration
from odyssey.utils.registration_export import (
    build_registration_table, export_csv, fetch_identities, fetch_registrations, GUEST
)


def add_registration(app, tournament_id, user_id, custom_data, registered_at):
    with app.app_context():
        registration = Registration(
            tournament_id=tournament_id,
            user_id=user_id,
            custom_data=custom_data,
            registered_at=registered_at,
        )
        db.session.add(registration)
        db.session.commit()
        return registration.id


def test_export_has_header_and_rows_in_store_order(app, make_user, make_tournament):
    tournament_id = make_tournament(fields=[{'name': 'Team Name', 'type': 'text', 'required': True}])
    first = make_user(username='Viper')
    second = make_user(email='second@odyssey.gg', username='Sage')
    add_registration(app, tournament_id, second, {'Team Name': 'Ghost Squad'}, datetime(2026, 10, 1, 12, 0, 0))
    add_registration(app, tournament_id, first, {'Team Name': 'The "Best" Team'}, datetime(2026, 10, 2, 9, 30, 5))

    with app.app_context():
        tournament = db.session.get(Tournament, tournament_id)
        table = build_registration_table(tournament, fetch_registrations(tournament), fetch_identities())
        csv_text = export_csv(table)

    assert csv_text.splitlines() == [
        '"Username","Registered At","Team Name"',
        '"Sage","2026-10-01 12:00:00","Ghost Squad"',
        '"Viper","2026-10-02 09:30:05","The ""Best"" Team"',
    ]


def test_unknown_users_show_as_guest(app, make_tournament):
    fields = [
        {'name': 'Team Name', 'type': 'text', 'required': True},
        {'name': 'Roster Photo', 'type': 'file', 'required': False},
    ]
    tournament_id = make_tournament(fields=fields)
    add_registration(app, tournament_id, 'deleted-uid', {'Team Name': 'Ghost Squad'}, datetime(2026, 10, 1))

    with app.app_context():
        tournament = db.session.get(Tournament, tournament_id)
        table = build_registration_table(tournament, fetch_registrations(tournament), [])

    assert table.columns == ['Username', 'Registered At', 'Team Name', 'Roster Photo']
    row = table.rows[0]
    assert row.username == GUEST
    assert row.cells[1].is_empty
    assert row.values()[-1] == ''


def test_file_paths_export_raw(app, make_user, make_tournament):
    fields = [{'name': 'Roster Photo', 'type': 'file', 'required': True}]
    tournament_id = make_tournament(fields=fields)
    user_id = make_user()
    add_registration(app, tournament_id, user_id, {'Roster Photo': '/uploads/1700000000000_roster.png'},
                     datetime(2026, 10, 1))

    with app.app_context():
        tournament = db.session.get(Tournament, tournament_id)
        table = build_registration_table(tournament, fetch_registrations(tournament), fetch_identities())

    assert table.rows[0].cells[0].is_file
    assert '"/uploads/1700000000000_roster.png"' in export_csv(table)


def broken_user_model():
    users = MagicMock()
    users.query.order_by.side_effect = OperationalError('SELECT', {}, Exception('database is locked'))
    return users


def test_failed_identity_fetch_degrades_to_empty(app, make_user, monkeypatch):
    make_user()
    monkeypatch.setattr('odyssey.utils.registration_export.User', broken_user_model())

    with app.app_context():
        assert fetch_identities() == []


def test_failed_identity_fetch_shows_guest_rows(app, client, make_admin, make_user, make_tournament, login,
                                                monkeypatch):
    tournament_id = make_tournament(fields=[{'name': 'Team Name', 'type': 'text', 'required': True}])
    add_registration(app, tournament_id, make_user(username='Viper'), {'Team Name': 'Ghost Squad'},
                     datetime(2026, 10, 1))
    login(make_admin(), role=2)
    monkeypatch.setattr('odyssey.utils.registration_export.User', broken_user_model())

    resp = client.get(f'/admin/registrations/{tournament_id}')

    html = resp.get_data(as_text=True)
    assert resp.status_code == 200
    assert 'Guest' in html
    assert 'Ghost Squad' in html
    assert 'Viper' not in html


def test_admin_export_route(app, client, make_admin, make_user, make_tournament, login):
    tournament_id = make_tournament(fields=[{'name': 'Team Name', 'type': 'text', 'required': True}])
    add_registration(app, tournament_id, make_user(username='Viper'), {'Team Name': 'Ghost Squad'},
                     datetime(2026, 10, 1, 8, 0, 0))
    login(make_admin(), role=2)

    resp = client.get(f'/admin/registrations/{tournament_id}/export')

    assert resp.status_code == 200
    assert resp.mimetype == 'text/csv'
    assert 'Odyssey Open_registrations.csv' in resp.headers['Content-Disposition']
    assert resp.get_data(as_text=True).splitlines()[1] == '"Viper","2026-10-01 08:00:00","Ghost Squad"'


def test_admin_export_without_registrations_redirects(client, make_admin, make_tournament, login):
    tournament_id = make_tournament(fields=[{'name': 'Team Name', 'type': 'text', 'required': True}])
    login(make_admin(), role=2)

    resp = client.get(f'/admin/registrations/{tournament_id}/export')

    assert resp.status_code == 302
    assert resp.headers['Location'].endswith(f'/admin/registrations/{tournament_id}')


def test_admin_registration_view(app, client, make_admin, make_tournament, login):
    fields = [{'name': 'Roster Photo', 'type': 'file', 'required': False}]
    tournament_id = make_tournament(fields=fields)
    add_registration(app, tournament_id, 'ghost-uid', {'Roster Photo': '/uploads/1_roster.png'}, datetime(2026, 10, 1))
    add_registration(app, tournament_id, 'other-uid', {}, datetime(2026, 10, 2))
    login(make_admin(), role=2)

    html = client.get(f'/admin/registrations/{tournament_id}').get_data(as_text=True)

    assert 'View File' in html
    assert 'href="/uploads/1_roster.png"' in html
    assert 'N/A' in html
    assert 'Guest' in html


def test_export_requires_admin(client, make_user, make_tournament, login):
    tournament_id = make_tournament()
    login(make_user())
    resp = client.get(f'/admin/registrations/{tournament_id}/export')
    assert resp.status_code == 302
    assert '/tournaments/' in resp.headers['Location']
