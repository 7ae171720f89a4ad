"""Typed notifications emitted after committed game transitions.

The engine only knows these dataclasses. Transports subscribe a handler on
the app (see ``chronology.socketio_events``) and translate events into
whatever their clients understand. Events are hints that state changed;
clients re-fetch the authoritative state over HTTP.
"""

from dataclasses import dataclass, asdict
from typing import Callable, Iterable, List, Optional

from flask import current_app

EXTENSION_KEY = 'chronology_event_handlers'

EventHandler = Callable[[int, 'GameEvent'], None]


@dataclass(frozen=True)
class GameEvent:
    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self):
        data = asdict(self)
        data['type'] = self.kind
        return data


@dataclass(frozen=True)
class GameStarted(GameEvent):
    first_player_id: Optional[int]


@dataclass(frozen=True)
class CardPlaced(GameEvent):
    player_id: int
    player_name: str
    correct: bool
    message: str


@dataclass(frozen=True)
class TurnAdvanced(GameEvent):
    player_id: int


@dataclass(frozen=True)
class GameFinished(GameEvent):
    winner_id: Optional[int]
    winner_name: Optional[str]


@dataclass(frozen=True)
class GameReset(GameEvent):
    pass


@dataclass(frozen=True)
class RosterChanged(GameEvent):
    player_id: int
    is_active: bool


def subscribe(app, handler: EventHandler) -> None:
    app.extensions.setdefault(EXTENSION_KEY, []).append(handler)


def handlers() -> List[EventHandler]:
    return list(current_app.extensions.get(EXTENSION_KEY, []))


def publish(lobby_id: int, events: Iterable[GameEvent]) -> None:
    """Hand events to every subscribed transport, in order.

    Delivery is fire-and-forget: a failing handler is logged and the
    remaining handlers still run.
    """
    for event in events:
        for handler in handlers():
            try:
                handler(lobby_id, event)
            except Exception:
                current_app.logger.exception(f"[event-failed] lobby={lobby_id} event={event.kind}")
