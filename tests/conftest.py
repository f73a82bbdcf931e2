"""
Shared pytest fixtures.

Every test gets a fresh app on an in-memory SQLite database. Each user
gets their own test client so session cookies never mix.
"""

import pytest

from config import TestConfig
from taverna import create_app, db
from taverna.models import User

PASSWORD = 'correct-horse-42'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def register(app):
    """Factory: register (and log in) a user, returning their test client.

    The client carries the new user's id as `client.user_id`.
    """
    def _register(name, role=None):
        client = app.test_client()
        resp = client.post('/api/auth/register', json={
            'email': f'{name.lower()}@example.com',
            'password': PASSWORD,
            'displayName': name,
        })
        assert resp.status_code == 201, resp.get_json()
        client.user_id = resp.get_json()['data']['id']
        if role:
            with app.app_context():
                user = db.session.get(User, client.user_id)
                user.role = role
                db.session.commit()
        return client
    return _register


@pytest.fixture
def dm(register):
    return register('Morgan')


@pytest.fixture
def player(register):
    return register('Robin')


@pytest.fixture
def other_player(register):
    return register('Sasha')


@pytest.fixture
def outsider(register):
    return register('Quinn')


@pytest.fixture
def campaign(dm, player, other_player):
    """A campaign run by `dm` with `player` and `other_player` joined."""
    resp = dm.post('/api/campaigns', json={'name': 'Curse of the Sunken Keep'})
    assert resp.status_code == 201
    data = resp.get_json()['data']
    for client in (player, other_player):
        joined = client.post('/api/campaigns/join', json={'inviteCode': data['inviteCode']})
        assert joined.status_code == 200, joined.get_json()
    return data


@pytest.fixture
def live_session(dm, campaign):
    resp = dm.post(f'/api/campaigns/{campaign["id"]}/sessions', json={'sessionNumber': 1})
    assert resp.status_code == 201
    session = resp.get_json()['data']
    dm.patch(f'/api/sessions/{session["id"]}', json={'status': 'LIVE'})
    return session
