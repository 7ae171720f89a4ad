"""Read-side views of a Chronology game for the HTTP API."""

from typing import List, Optional

from chronology.models import ChronologyGame, Player
from . import current_card as current_card_slot
from . import draw_pile, roster, timeline


def player_timelines(game: ChronologyGame, viewer: Optional[Player]) -> List[dict]:
    """Timelines of all active players, the one whose turn it is first."""
    seats = roster.active_players(game.lobby_id)
    seats.sort(key=lambda p: (p.id != game.current_player_id, p.join_order))
    return [
        {
            'player_id': p.id,
            'player_name': p.name,
            'is_current': p.id == game.current_player_id,
            'is_me': viewer is not None and p.id == viewer.id,
            'timeline': [entry.to_dict() for entry in timeline.get(game.id, p.id)],
        }
        for p in seats
    ]


def players(game: ChronologyGame) -> dict:
    return {
        'players': [entry.to_dict() for entry in roster.roster(game)],
        'current_player_id': game.current_player_id,
        'cards_to_win': game.cards_to_win,
    }


def current_card(game: ChronologyGame) -> Optional[dict]:
    card = current_card_slot.get(game)
    return card.to_dict() if card else None


def state(game: ChronologyGame, viewer: Optional[Player]) -> dict:
    payload = game.to_dict()
    payload['current_card'] = current_card(game)
    payload['players'] = [entry.to_dict() for entry in roster.roster(game)]
    payload['draw_pile_count'] = draw_pile.undrawn_count(game)
    payload['player_id'] = viewer.id if viewer else None
    payload['is_my_turn'] = viewer is not None and game.current_player_id == viewer.id
    payload['timeline'] = (
        [entry.to_dict() for entry in timeline.get(game.id, viewer.id)] if viewer else []
    )
    return payload
