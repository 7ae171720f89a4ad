import pytest

from chronology import db
from chronology.models import Card, DrawPileEntry, CARD_CATEGORY_RESPONSE
from chronology.services.chronology import current_card, draw_pile, lifecycle
from chronology.services.chronology.errors import DrawPileExhausted, NoDecksProvided


@pytest.mark.parametrize('text, expected', [
    ('The Berlin Wall falls in 1989', 1989),
    ('Founded 1066, rebuilt 1666', 1066),
    ('Year 999 then 1215', 1215),
    ('Serial 123456 and 1492', 1492),
    ('Sailed in 1492AD', None),
    ('year1492', None),
    ('Crowned 800AD, built (1163)', 1163),
    ('Launched in 2999', 2999),
    ('Far future 3001', None),
    ('No date here', None),
    ('', None),
    (None, None),
])
def test_parse_year(text, expected):
    assert draw_pile.parse_year(text) == expected


def test_structured_year_wins_over_text(flask_app, make_deck):
    deck = make_deck('Mixed', [('Printed in 1455', 1454)])
    card = deck.cards.first()
    assert draw_pile.resolve_year(card) == 1454

    card.year = 42
    assert draw_pile.resolve_year(card) == 1455


def test_initialize_requires_decks(flask_app, make_user, make_deck):
    deck = make_deck('Chronology', ['A 1900'])
    _, game = lifecycle.create_lobby_game(make_user('alice'), 'Room', None, 3, [deck.id])
    with pytest.raises(NoDecksProvided):
        draw_pile.initialize(game, [])


def test_pile_keeps_only_dated_prompt_cards(flask_app, make_user, make_deck):
    deck = make_deck('Chronology', ['Moon landing 1969', 'Undated trivia', ('Fall of Rome', 476), ('Printing press', 1440)])
    db.session.add(Card(deck_id=deck.id, category=CARD_CATEGORY_RESPONSE, text='A response from 1999'))
    db.session.commit()

    _, game = lifecycle.create_lobby_game(make_user('alice'), 'Room', None, 3, [deck.id])

    entries = DrawPileEntry.query.filter_by(game_id=game.id).all()
    assert sorted(e.year for e in entries) == [1440, 1969]
    assert all(draw_pile.MIN_YEAR <= e.year <= draw_pile.MAX_YEAR for e in entries)


def test_initialize_skips_cards_already_in_pile(flask_app, make_user, make_deck):
    deck = make_deck('Chronology', ['A 1900', 'B 1950'])
    _, game = lifecycle.create_lobby_game(make_user('alice'), 'Room', None, 3, [deck.id])

    assert draw_pile.initialize(game, [deck.id]) == 0
    assert draw_pile.undrawn_count(game) == 2


def test_draw_random_fills_slot_until_exhausted(flask_app, make_user, make_deck):
    deck = make_deck('Chronology', ['A 1900', 'B 1950'])
    _, game = lifecycle.create_lobby_game(make_user('alice'), 'Room', None, 3, [deck.id])

    seen = set()
    for _ in range(2):
        entry = draw_pile.draw_random(game)
        card = current_card.get(game)
        assert card.card_id == entry.card_id
        assert card.year == entry.year
        seen.add(entry.card_id)
    assert len(seen) == 2
    assert draw_pile.undrawn_count(game) == 0

    with pytest.raises(DrawPileExhausted):
        draw_pile.draw_random(game)
    assert current_card.get(game) is None


def test_replenish_all_returns_every_card(flask_app, make_user, make_deck):
    deck = make_deck('Chronology', ['A 1900', 'B 1950', 'C 2000'])
    _, game = lifecycle.create_lobby_game(make_user('alice'), 'Room', None, 3, [deck.id])
    draw_pile.take_random(game)
    draw_pile.take_random(game)
    assert draw_pile.undrawn_count(game) == 1

    draw_pile.replenish_all(game)
    assert draw_pile.undrawn_count(game) == 3
