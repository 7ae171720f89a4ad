from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from chronology import db
from chronology.models import ChronologyGame, Lobby, Player, GAME_TYPE_CHRONOLOGY, STATUS_WAITING
from chronology.services.chronology import lifecycle, snapshot, draw_pile
from chronology.services.chronology.errors import ChronologyError, InvalidPosition, ValidationError


chronology = Blueprint('chronology', __name__)


@chronology.errorhandler(ChronologyError)
def handle_chronology_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


@chronology.errorhandler(SQLAlchemyError)
def handle_storage_error(exc):
    db.session.rollback()
    current_app.logger.exception(f"[storage-error] {request.method} {request.path}")
    return jsonify({'error': 'Internal server error'}), 500


def _payload():
    return request.get_json(silent=True) or request.form


def _parse_int(value, error):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise error


def _lobby_id(raw):
    return _parse_int(raw, ValidationError('Invalid lobby id'))


def _deck_ids(data):
    if hasattr(data, 'getlist'):
        raw = data.getlist('deck_ids') or data.getlist('deckId')
    else:
        raw = data.get('deck_ids') or data.get('deckId') or []
        if not isinstance(raw, list):
            raw = [raw]
    return [_parse_int(value, ValidationError('Invalid deck id')) for value in raw]


def _game_payload(lobby_id):
    game = lifecycle.get_game(lobby_id)
    viewer = lifecycle.require_player(lobby_id, current_user)
    return snapshot.state(game, viewer)


def _member_game(lobby_id, active=False):
    """Resolve the caller's seat before a default game may be created."""
    lifecycle.get_lobby(lobby_id)
    viewer = lifecycle.require_player(lobby_id, current_user, active=active)
    return lifecycle.ensure_exists(lobby_id), viewer


@chronology.route('/create', methods=['POST'])
@login_required
def create_lobby():
    """
    Creates a Chronology lobby and game, seeds the draw pile from the chosen
    decks and seats the creator as the first player.
    """
    data = _payload()
    cards_to_win = data.get('cards_to_win', data.get('cardsToWin'))
    if cards_to_win in (None, ''):
        cards_to_win = current_app.config.get('CHRONOLOGY_CARDS_TO_WIN', 5)
    cards_to_win = _parse_int(cards_to_win, ValidationError('cards_to_win must be a positive integer'))

    lobby, game = lifecycle.create_lobby_game(
        current_user,
        name=data.get('name'),
        password=data.get('password') or None,
        cards_to_win=cards_to_win,
        deck_ids=_deck_ids(data),
    )
    return jsonify({
        'message': 'New Chronology lobby created!',
        'lobby_id': lobby.id,
        'lobby': lobby.to_dict(),
        'game': game.to_dict(),
        'draw_pile_count': draw_pile.undrawn_count(game),
    }), 201


@chronology.route('/search', methods=['GET'])
@login_required
def search_lobbies():
    name = request.args.get('name', '')
    try:
        page = max(1, int(request.args.get('page', 1)))
    except (TypeError, ValueError):
        page = 1
    page_size = int(current_app.config.get('LOBBY_PAGE_SIZE', 10))

    query = Lobby.query.filter(Lobby.game_type == GAME_TYPE_CHRONOLOGY, Lobby.name.ilike(f'%{name}%'))
    total = query.count()
    lobbies = (
        query.order_by(Lobby.created_at.desc(), Lobby.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    results = []
    for lobby in lobbies:
        row = lobby.to_dict()
        game = ChronologyGame.query.filter_by(lobby_id=lobby.id).first()
        row['game_status'] = game.status if game else STATUS_WAITING
        row['player_count'] = Player.query.filter_by(lobby_id=lobby.id, is_active=True).count()
        results.append(row)

    return jsonify({
        'lobbies': results,
        'total_count': total,
        'current_page': page,
        'page_size': page_size,
    })


@chronology.route('/<lobby_id>/join', methods=['POST'])
@login_required
def join_lobby(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    data = _payload()
    player = lifecycle.join_lobby(lobby_id, current_user, password=data.get('password'))
    return jsonify({'message': 'Joined lobby', 'player': player.to_dict()}), 200


@chronology.route('/<lobby_id>/leave', methods=['POST'])
@login_required
def leave_lobby(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    player = lifecycle.leave_lobby(lobby_id, current_user)
    return jsonify({'message': 'You have left the lobby.', 'player': player.to_dict()}), 200


@chronology.route('/<lobby_id>/start', methods=['POST'])
@login_required
def start_game(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    _member_game(lobby_id, active=True)
    result = lifecycle.start_game(lobby_id, current_user)
    message = 'Game started!' if not result.draw_pile_exhausted else 'Game started, but the draw pile is already empty.'
    return jsonify({'message': message, 'result': result.to_dict(), 'game': _game_payload(lobby_id)}), 200


@chronology.route('/<lobby_id>/reset', methods=['POST'])
@login_required
def reset_game(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    lifecycle.reset_game(lobby_id, current_user)
    return jsonify({'message': 'Game reset! Starting new game...', 'game': _game_payload(lobby_id)}), 200


@chronology.route('/<lobby_id>/place', methods=['POST'])
@login_required
def place_card(lobby_id):
    """
    Places the current card in the requesting player's timeline, then checks
    for a winner, passes the turn and draws the next card.
    """
    lobby_id = _lobby_id(lobby_id)
    data = _payload()
    position = _parse_int(data.get('position'), InvalidPosition())
    card_id = data.get('card_id')
    if card_id in (None, ''):
        raise ValidationError('card_id is required')
    card_id = _parse_int(card_id, ValidationError('Invalid card id'))

    result = lifecycle.play_turn(lobby_id, current_user, position, card_id=card_id)
    return jsonify({'message': result.message, 'result': result.to_dict(), 'game': _game_payload(lobby_id)}), 200


@chronology.route('/<lobby_id>/state', methods=['GET'])
@login_required
def get_game_state(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    game, viewer = _member_game(lobby_id)
    payload = snapshot.state(game, viewer)
    payload['lobby'] = lifecycle.get_lobby(lobby_id).to_dict()
    return jsonify(payload)


@chronology.route('/<lobby_id>/timeline', methods=['GET'])
@login_required
def get_timeline(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    game, viewer = _member_game(lobby_id)
    response = jsonify({
        'timelines': snapshot.player_timelines(game, viewer),
        'is_my_turn': game.current_player_id == viewer.id,
        'game_status': game.status,
    })
    response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    return response


@chronology.route('/<lobby_id>/current-card', methods=['GET'])
@login_required
def get_current_card(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    game, _ = _member_game(lobby_id)
    return jsonify({'current_card': snapshot.current_card(game)})


@chronology.route('/<lobby_id>/draw-pile-count', methods=['GET'])
@login_required
def get_draw_pile_count(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    game, _ = _member_game(lobby_id)
    return jsonify({'count': draw_pile.undrawn_count(game)})


@chronology.route('/<lobby_id>/players', methods=['GET'])
@login_required
def get_players(lobby_id):
    lobby_id = _lobby_id(lobby_id)
    game, _ = _member_game(lobby_id)
    return jsonify(snapshot.players(game))
