from flask import current_app
from flask_socketio import join_room, leave_room, emit
from chronology import socketio
from chronology.services.chronology.events import (
    GameEvent, GameStarted, GameReset, CardPlaced, GameFinished,
)

NAMESPACE = '/ws'


def lobby_room(lobby_id) -> str:
    return f"lobby:{lobby_id}"


def _lobby_id_from(data):
    raw = (data or {}).get('lobby_id')
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # Clients reload the page on start/reset, which briefly drops the socket,
    # so a disconnect never marks a player inactive.
    current_app.logger.debug(f"[ws-disconnect] reason={reason}")


def handle_join_lobby(data):
    lobby_id = _lobby_id_from(data)
    if lobby_id is None:
        emit('error', {'message': 'lobby_id is required'})
        return
    room = lobby_room(lobby_id)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_lobby(data):
    lobby_id = _lobby_id_from(data)
    if lobby_id is None:
        emit('error', {'message': 'lobby_id is required'})
        return
    room = lobby_room(lobby_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def broadcast_game_event(lobby_id: int, event: GameEvent) -> None:
    """Translate an engine event into the messages lobby clients listen for.

    ``reload`` asks for a full page reload, ``result`` announces a placement
    and ``refresh`` tells clients to re-fetch state. ``state_update`` carries
    the typed event for clients that want it.
    """
    room = lobby_room(lobby_id)
    if isinstance(event, (GameStarted, GameReset)):
        socketio.emit('reload', {'lobby_id': lobby_id}, to=room, namespace=NAMESPACE)
    if isinstance(event, CardPlaced):
        socketio.emit('result', {
            'player': event.player_name,
            'outcome': 'correct' if event.correct else 'incorrect',
            'message': event.message,
        }, to=room, namespace=NAMESPACE)
    if isinstance(event, GameFinished):
        socketio.emit('result', {
            'player': event.winner_name,
            'outcome': 'finished',
            'message': f'{event.winner_name} wins!' if event.winner_name else 'No more cards. Game over.',
        }, to=room, namespace=NAMESPACE)
    socketio.emit('state_update', {'lobby_id': lobby_id, 'event': event.to_dict()}, to=room, namespace=NAMESPACE)
    socketio.emit('refresh', {'lobby_id': lobby_id}, to=room, namespace=NAMESPACE)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('join_lobby', handle_join_lobby, namespace=NAMESPACE)
    socketio.on_event('leave_lobby', handle_leave_lobby, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('disconnect', handle_disconnect, namespace='/')
        socketio.on_event('join_lobby', handle_join_lobby, namespace='/')
        socketio.on_event('leave_lobby', handle_leave_lobby, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
