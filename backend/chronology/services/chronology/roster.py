"""Players of a lobby in join order."""

from dataclasses import dataclass
from typing import List, Optional

from chronology import db
from chronology.models import ChronologyGame, Lobby, Player, User
from . import timeline


@dataclass
class RosterEntry:
    player: Player
    timeline_size: int
    is_current: bool

    def to_dict(self):
        data = self.player.to_dict()
        data['timeline_size'] = self.timeline_size
        data['is_current'] = self.is_current
        return data


def players(lobby_id: int) -> List[Player]:
    """Every player ever seated in the lobby, active or not."""
    return Player.query.filter_by(lobby_id=lobby_id).order_by(Player.join_order.asc()).all()


def active_players(lobby_id: int) -> List[Player]:
    return [p for p in players(lobby_id) if p.is_active]


def roster(game: ChronologyGame) -> List[RosterEntry]:
    size_by_player = timeline.sizes(game.id)
    return [
        RosterEntry(
            player=p,
            timeline_size=size_by_player.get(p.id, 0),
            is_current=p.id == game.current_player_id,
        )
        for p in players(game.lobby_id)
    ]


def find_player(lobby_id: int, user_id: int) -> Optional[Player]:
    return Player.query.filter_by(lobby_id=lobby_id, user_id=user_id).first()


def join(lobby: Lobby, user: User) -> Player:
    """Seat ``user`` in ``lobby``, reactivating an earlier seat if there is one."""
    player = find_player(lobby.id, user.id)
    if player:
        player.is_active = True
    else:
        last = db.session.query(db.func.max(Player.join_order)).filter(Player.lobby_id == lobby.id).scalar()
        player = Player(lobby_id=lobby.id, user_id=user.id, is_active=True, join_order=(last or 0) + 1)
        db.session.add(player)
    db.session.flush()
    return player


def leave(player: Player) -> None:
    player.is_active = False
    db.session.flush()
