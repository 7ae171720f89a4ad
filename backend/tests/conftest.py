import os
import sys
from types import SimpleNamespace

import pytest
from flask import g

# Ensure the backend root (containing the `chronology` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from chronology import create_app, db, socketio
from chronology.models import Card, Deck, Lobby, User, CARD_CATEGORY_PROMPT
from chronology.services.chronology import draw_pile, events


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CHRONOLOGY_CARDS_TO_WIN = 3
    CHRONOLOGY_DEFAULT_DECK = 'Chronology'
    LOBBY_PAGE_SIZE = 10


def reset_login_cache_per_request(application):
    """Requests reuse the app context a fixture holds open, so Flask-Login's
    per-context user cache in ``g`` must be reset for each request."""
    @application.before_request
    def _reset_login_cache():
        g.pop('_login_user', None)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    reset_login_cache_per_request(application)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def make_user(flask_app):
    def _make(username, password='password'):
        user = User(username=username)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture()
def make_deck(flask_app):
    """Create a deck of prompt cards; a tuple entry is ``(text, year)``."""
    def _make(name, cards):
        deck = Deck(name=name)
        db.session.add(deck)
        db.session.flush()
        for card in cards:
            text, year = card if isinstance(card, tuple) else (card, None)
            db.session.add(Card(deck_id=deck.id, category=CARD_CATEGORY_PROMPT, text=text, year=year))
        db.session.commit()
        return deck
    return _make


@pytest.fixture()
def make_lobby(flask_app):
    def _make(name='Room', password=None):
        lobby = Lobby(name=name)
        lobby.set_password(password)
        db.session.add(lobby)
        db.session.commit()
        return lobby
    return _make


@pytest.fixture()
def login(flask_app):
    """Return a test client logged in as ``username``."""
    def _login(username, password='password'):
        test_client = flask_app.test_client()
        res = test_client.post('/login', json={'username': username, 'password': password})
        assert res.status_code == 200
        return test_client
    return _login


@pytest.fixture()
def recorded_events(flask_app):
    received = []
    events.subscribe(flask_app, lambda lobby_id, event: received.append((lobby_id, event)))
    return received


@pytest.fixture()
def ordered_draws(monkeypatch):
    """Make draws deterministic: always take the lowest card id left."""
    lowest = SimpleNamespace(choice=lambda entries: min(entries, key=lambda e: e.card_id))
    monkeypatch.setattr(draw_pile, 'random', lowest)
