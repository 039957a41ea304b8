"""
Tests for tournament status: derived from the dates unless an admin
overrides it.
"""

from datetime import datetime

import pytest

from odyssey.extensions import db
from odyssey.models.tournaments import Tournament

NOW = datetime(2026, 10, 19, 12, 0)

LONG_AGO = (datetime(2000, 1, 1), datetime(2000, 1, 2))
SPANNING_NOW = (datetime(2000, 1, 1), datetime(2100, 1, 1))
FAR_AHEAD = (datetime(2100, 1, 1), datetime(2100, 1, 2))


@pytest.mark.parametrize('start, end, expected', [
    (datetime(2026, 11, 1), datetime(2026, 11, 2), 'upcoming'),
    (datetime(2026, 10, 19, 9, 0), datetime(2026, 10, 19, 21, 0), 'ongoing'),
    (datetime(2026, 10, 1), datetime(2026, 10, 2), 'past'),
    (datetime(2026, 10, 19, 12, 0), datetime(2026, 10, 19, 12, 0), 'ongoing'),
])
def test_status_derived_from_dates(start, end, expected):
    assert Tournament(start_date=start, end_date=end).status_at(NOW) == expected


def test_stored_status_wins():
    tournament = Tournament(start_date=datetime(2026, 11, 1), end_date=datetime(2026, 11, 2), status='ongoing')
    assert tournament.status_at(NOW) == 'ongoing'

    tournament.status = None
    assert tournament.status_at(NOW) == 'upcoming'


def test_listing_groups_by_status(client, make_tournament):
    make_tournament(name='Retro Cup', start_date=LONG_AGO[0], end_date=LONG_AGO[1])
    make_tournament(name='Endless League', start_date=SPANNING_NOW[0], end_date=SPANNING_NOW[1])
    make_tournament(name='Future Masters', start_date=FAR_AHEAD[0], end_date=FAR_AHEAD[1])

    html = client.get('/tournaments/').get_data(as_text=True)

    assert html.index('Live now') < html.index('Endless League') < html.index('<h2>Upcoming</h2>')
    assert html.index('<h2>Upcoming</h2>') < html.index('Future Masters') < html.index('<h2>Past</h2>')
    assert html.index('<h2>Past</h2>') < html.index('Retro Cup')


def test_admin_override_moves_tournament(app, client, make_admin, make_tournament, login):
    tournament_id = make_tournament(name='Future Masters', start_date=FAR_AHEAD[0], end_date=FAR_AHEAD[1])
    login(make_admin(), role=2)

    resp = client.post(f'/admin/tournaments/{tournament_id}/status', data={'status': 'past'})

    assert resp.status_code == 302
    with app.app_context():
        tournament = db.session.get(Tournament, tournament_id)
        assert tournament.status == 'past'
        assert tournament.current_status == 'past'
        assert tournament.to_dict()['status'] == 'past'
    html = client.get('/tournaments/').get_data(as_text=True)
    assert html.index('<h2>Past</h2>') < html.index('Future Masters')


def test_admin_can_return_to_automatic_status(app, client, make_admin, make_tournament, login):
    tournament_id = make_tournament(start_date=FAR_AHEAD[0], end_date=FAR_AHEAD[1], status='ongoing')
    login(make_admin(), role=2)

    client.post(f'/admin/tournaments/{tournament_id}/status', data={'status': ''})

    with app.app_context():
        tournament = db.session.get(Tournament, tournament_id)
        assert tournament.status is None
        assert tournament.current_status == 'upcoming'


def test_unknown_status_is_rejected(app, client, make_admin, make_tournament, login):
    tournament_id = make_tournament(start_date=FAR_AHEAD[0], end_date=FAR_AHEAD[1])
    login(make_admin(), role=2)

    resp = client.post(f'/admin/tournaments/{tournament_id}/status', data={'status': 'cancelled'},
                       follow_redirects=True)

    assert 'Unknown tournament status cancelled.' in resp.get_data(as_text=True)
    with app.app_context():
        assert db.session.get(Tournament, tournament_id).status is None


def test_status_route_requires_admin(app, client, make_user, make_tournament, login):
    tournament_id = make_tournament(start_date=FAR_AHEAD[0], end_date=FAR_AHEAD[1])
    login(make_user())

    resp = client.post(f'/admin/tournaments/{tournament_id}/status', data={'status': 'past'})

    assert resp.status_code == 302
    with app.app_context():
        assert db.session.get(Tournament, tournament_id).status is None


def test_admin_list_shows_status(client, make_admin, make_tournament, login):
    make_tournament(start_date=SPANNING_NOW[0], end_date=SPANNING_NOW[1])
    login(make_admin(), role=2)

    html = client.get('/admin/tournaments').get_data(as_text=True)

    assert 'status-ongoing' in html
    assert '(from dates)' in html
