"""Win detection for Chronology games."""

from typing import Optional

from flask import current_app

from chronology import db
from chronology.models import ChronologyGame, Player, STATUS_FINISHED
from . import roster, timeline


def check_winner(game: ChronologyGame) -> Optional[Player]:
    """Finish the game for the earliest-joined active player at the threshold.

    Join order breaks ties, even against a longer timeline further down the
    roster. A game that already has a result keeps it.
    """
    if game.status == STATUS_FINISHED:
        return db.session.get(Player, game.winner_id) if game.winner_id else None

    size_by_player = timeline.sizes(game.id)
    for player in roster.active_players(game.lobby_id):
        if size_by_player.get(player.id, 0) >= game.cards_to_win:
            game.status = STATUS_FINISHED
            game.winner_id = player.id
            game.current_player_id = None
            db.session.flush()
            current_app.logger.info(f"[winner] game={game.id} player={player.id} cards={size_by_player[player.id]}")
            return player
    return None
