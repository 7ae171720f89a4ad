import threading

import pytest

from chronology import create_app, db
from chronology.models import DrawPileEntry, TimelineEntry
from conftest import TestConfig, reset_login_cache_per_request

ATTEMPTS = 6


@pytest.fixture()
def flask_app(tmp_path):
    # Every request thread opens its own connection, so the database has to live in a file
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'chronology.db'}"

    application = create_app(FileConfig)
    reset_login_cache_per_request(application)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


def test_simultaneous_placements_apply_once(make_user, make_deck, login, ordered_draws):
    deck = make_deck('Chronology', [(f'Event {i}', 1900 + i) for i in range(6)])
    make_user('alice')
    make_user('bob')
    alice = login('alice')
    lobby_id = alice.post('/chronology/create', json={'name': 'Room', 'deck_ids': [deck.id]}).get_json()['lobby_id']
    login('bob').post(f'/chronology/{lobby_id}/join')
    game = alice.post(f'/chronology/{lobby_id}/start').get_json()['game']
    card_id = game['current_card']['card_id']
    undrawn_before = game['draw_pile_count']

    clients = [login('alice') for _ in range(ATTEMPTS)]
    db.session.remove()

    barrier = threading.Barrier(ATTEMPTS)
    codes = []

    def place(test_client):
        barrier.wait()
        res = test_client.post(f'/chronology/{lobby_id}/place', json={'position': 1, 'card_id': card_id})
        codes.append(res.status_code)

    threads = [threading.Thread(target=place, args=(c,)) for c in clients]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(codes) == [200] + [409] * (ATTEMPTS - 1)
    alice_id = game['player_id']
    placed = TimelineEntry.query.filter_by(game_id=game['id'], player_id=alice_id).count()
    assert placed == 2
    undrawn = DrawPileEntry.query.filter_by(game_id=game['id'], drawn=False).count()
    assert undrawn == undrawn_before - 1
