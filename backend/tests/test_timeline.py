import pytest

from chronology.services.chronology import current_card, lifecycle, roster, timeline
from chronology.services.chronology.errors import InvalidPosition, NoCardToPlace


@pytest.mark.parametrize('year, position, years, expected', [
    (1965, 1, [1950, 1980], True),
    (1930, 1, [1950, 1980], False),
    (1930, 0, [1950, 1980], True),
    (1990, 2, [1950, 1980], True),
    (1950, 1, [1950, 1980], True),
    (1700, 0, [], True),
])
def test_is_correct_placement(year, position, years, expected):
    assert timeline.is_correct_placement(year, position, years) is expected


@pytest.mark.parametrize('position', [-1, 3])
def test_is_correct_placement_rejects_out_of_range(position):
    with pytest.raises(InvalidPosition):
        timeline.is_correct_placement(1965, position, [1950, 1980])


@pytest.fixture()
def seated(flask_app, make_user, make_deck):
    deck = make_deck('Chronology', [('A', 1950), ('B', 1980), ('C', 1965), ('D', 1930)])
    cards = {card.year: card.id for card in deck.cards}
    _, game = lifecycle.create_lobby_game(make_user('alice'), 'Room', None, 5, [deck.id])
    player = roster.active_players(game.lobby_id)[0]
    timeline.insert(game.id, player.id, 1950, cards[1950], 0)
    timeline.insert(game.id, player.id, 1980, cards[1980], 1)
    return game, player, cards


def test_insert_shifts_later_entries(seated):
    game, player, cards = seated
    timeline.insert(game.id, player.id, 1965, cards[1965], 1)

    entries = timeline.get(game.id, player.id)
    assert [e.year for e in entries] == [1950, 1965, 1980]
    assert [e.position for e in entries] == [0, 1, 2]


def test_insert_rejects_gap(seated):
    game, player, cards = seated
    with pytest.raises(InvalidPosition):
        timeline.insert(game.id, player.id, 1965, cards[1965], 5)


def test_correct_placement_extends_timeline(seated):
    game, player, cards = seated
    current_card.put(game, cards[1965], 1965)

    assert lifecycle.place_card(game, player, 1, cards[1965]) is True
    assert timeline.years(game.id, player.id) == [1950, 1965, 1980]
    assert current_card.get(game) is None


def test_wrong_placement_discards_card(seated):
    game, player, cards = seated
    current_card.put(game, cards[1930], 1930)

    assert lifecycle.place_card(game, player, 1, cards[1930]) is False
    assert timeline.years(game.id, player.id) == [1950, 1980]
    assert current_card.get(game) is None


def test_place_without_current_card(seated):
    game, player, cards = seated
    with pytest.raises(NoCardToPlace):
        lifecycle.place_card(game, player, 0, cards[1965])


def test_place_with_stale_card_id(seated):
    game, player, cards = seated
    current_card.put(game, cards[1965], 1965)
    with pytest.raises(NoCardToPlace):
        lifecycle.place_card(game, player, 1, cards[1930])
    assert current_card.get(game).card_id == cards[1965]
