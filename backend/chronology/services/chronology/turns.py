"""Turn order over the lobby roster."""

from chronology import db
from chronology.models import ChronologyGame, Player
from .errors import NoActivePlayers
from . import roster


def set_current_player(game: ChronologyGame, player_id) -> None:
    game.current_player_id = player_id
    db.session.flush()


def advance_turn(game: ChronologyGame) -> Player:
    """Hand the turn to the next active player in join order.

    Walks the whole roster starting after the current player's seat and
    wraps around, so with one active player the turn stays where it is.
    """
    seats = roster.players(game.lobby_id)
    if not seats:
        raise NoActivePlayers()

    current_idx = -1
    for idx, player in enumerate(seats):
        if player.id == game.current_player_id:
            current_idx = idx
            break

    for step in range(1, len(seats) + 1):
        candidate = seats[(current_idx + step) % len(seats)]
        if candidate.is_active:
            set_current_player(game, candidate.id)
            return candidate

    raise NoActivePlayers()
