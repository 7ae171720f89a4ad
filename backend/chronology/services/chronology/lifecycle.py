"""Chronology game lifecycle.

Every command that mutates a game runs inside ``game_transaction``: one
in-process lock per lobby plus one database transaction, with the game row
re-read (and row-locked where the database supports it) once the lock is
held. A whole turn (place, win check, advance, redraw) therefore commits or
fails as a unit, and a request acting on a card that another request
already consumed sees the state that request left behind.
"""

import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from flask import current_app

from chronology import db
from chronology.models import (
    ChronologyGame, Deck, Lobby, Player, User,
    GAME_TYPE_CHRONOLOGY, STATUS_ACTIVE, STATUS_FINISHED, STATUS_WAITING,
)
from . import current_card as current_card_slot
from . import draw_pile, roster, timeline, turns
from .errors import (
    AlreadyStarted, DrawPileExhausted, GameNotFound, InsufficientCards, LobbyNotFound,
    NoActivePlayers, NoCardToPlace, NoDecksProvided, NotActive, NotAPlayer, NotFinished,
    NotYourTurn, ValidationError, WrongPassword,
)
from .events import (
    CardPlaced, GameEvent, GameFinished, GameReset, GameStarted, RosterChanged, TurnAdvanced, publish,
)
from .winner import check_winner

# Entries disappear once no transaction holds the lock
_game_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
_game_locks_guard = threading.Lock()


def game_lock(lobby_id: int) -> threading.Lock:
    with _game_locks_guard:
        lock = _game_locks.get(lobby_id)
        if lock is None:
            lock = _game_locks[lobby_id] = threading.Lock()
        return lock


@contextmanager
def game_transaction(lobby_id: int):
    """Serialize a game mutation and commit it atomically."""
    with game_lock(lobby_id):
        # Rows read before the lock was taken may be stale by now
        db.session.expire_all()
        try:
            yield
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


@dataclass
class StartResult:
    first_player_id: Optional[int]
    draw_pile_exhausted: bool = False
    events: List[GameEvent] = field(default_factory=list)

    def to_dict(self):
        return {
            'first_player_id': self.first_player_id,
            'draw_pile_exhausted': self.draw_pile_exhausted,
        }


@dataclass
class TurnResult:
    correct: bool
    message: str
    winner_id: Optional[int] = None
    winner_name: Optional[str] = None
    next_player_id: Optional[int] = None
    draw_pile_exhausted: bool = False
    events: List[GameEvent] = field(default_factory=list)

    def to_dict(self):
        return {
            'correct': self.correct,
            'message': self.message,
            'winner_id': self.winner_id,
            'winner_name': self.winner_name,
            'next_player_id': self.next_player_id,
            'draw_pile_exhausted': self.draw_pile_exhausted,
        }


def get_lobby(lobby_id: int) -> Lobby:
    lobby = db.session.get(Lobby, lobby_id)
    if lobby is None:
        raise LobbyNotFound()
    return lobby


def get_game(lobby_id: int, for_update: bool = False) -> ChronologyGame:
    query = ChronologyGame.query.filter_by(lobby_id=lobby_id)
    if for_update:
        query = query.populate_existing().with_for_update()
    game = query.first()
    if game is None:
        raise GameNotFound()
    return game


def require_player(lobby_id: int, user: User, active: bool = False) -> Player:
    player = roster.find_player(lobby_id, user.id)
    if player is None or (active and not player.is_active):
        raise NotAPlayer()
    return player


def _new_game(lobby: Lobby, cards_to_win: int, deck_ids: Iterable[int]) -> ChronologyGame:
    game = ChronologyGame(lobby_id=lobby.id, cards_to_win=cards_to_win, status=STATUS_WAITING)
    db.session.add(game)
    db.session.flush()
    deck_ids = list(deck_ids)
    if deck_ids:
        draw_pile.initialize(game, deck_ids)
        draw_pile.resolve_years(game)
    return game


def ensure_exists(lobby_id: int) -> ChronologyGame:
    """Return the lobby's game, creating a default one if it has none."""
    game = ChronologyGame.query.filter_by(lobby_id=lobby_id).first()
    if game is not None:
        return game

    with game_transaction(lobby_id):
        lobby = get_lobby(lobby_id)
        game = ChronologyGame.query.filter_by(lobby_id=lobby_id).first()
        if game is None:
            deck_name = current_app.config.get('CHRONOLOGY_DEFAULT_DECK', 'Chronology')
            deck = Deck.query.filter_by(name=deck_name).first()
            if deck is None:
                current_app.logger.warning(f"[ensure-game] lobby={lobby.id} default deck '{deck_name}' missing, draw pile left empty")
            cards_to_win = int(current_app.config.get('CHRONOLOGY_CARDS_TO_WIN', 5))
            game = _new_game(lobby, cards_to_win, [deck.id] if deck else [])
            current_app.logger.info(f"[ensure-game] lobby={lobby.id} created game={game.id}")
    return game


def create_lobby_game(user: User, name: str, password: Optional[str], cards_to_win: int,
                      deck_ids: Iterable[int]) -> Tuple[Lobby, ChronologyGame]:
    """Create a Chronology lobby and its game, seated with the creator."""
    name = (name or '').strip()
    if not name:
        raise ValidationError('Lobby name is required')
    if cards_to_win is None or cards_to_win < 1:
        raise ValidationError('cards_to_win must be a positive integer')
    deck_ids = list(deck_ids or [])
    if not deck_ids:
        raise NoDecksProvided()
    known = {deck_id for (deck_id,) in db.session.query(Deck.id).filter(Deck.id.in_(deck_ids))}
    unknown = [deck_id for deck_id in deck_ids if deck_id not in known]
    if unknown:
        raise ValidationError(f'Unknown deck id(s): {", ".join(str(d) for d in unknown)}')

    try:
        lobby = Lobby(name=name, game_type=GAME_TYPE_CHRONOLOGY)
        lobby.set_password(password)
        db.session.add(lobby)
        db.session.flush()
        roster.join(lobby, user)
        game = _new_game(lobby, cards_to_win, deck_ids)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        f"[create] lobby={lobby.id} game={game.id} cards_to_win={cards_to_win} pile={draw_pile.undrawn_count(game)}"
    )
    return lobby, game


def _pass_turn_if_vacant(game: ChronologyGame) -> Optional[Player]:
    """Move the turn off a current player who is no longer active."""
    if game.status != STATUS_ACTIVE:
        return None
    current = db.session.get(Player, game.current_player_id) if game.current_player_id else None
    if current is not None and current.is_active:
        return None
    if not roster.active_players(game.lobby_id):
        return None
    return turns.advance_turn(game)


def join_lobby(lobby_id: int, user: User, password: Optional[str] = None) -> Player:
    events: List[GameEvent] = []
    with game_transaction(lobby_id):
        lobby = get_lobby(lobby_id)
        if roster.find_player(lobby.id, user.id) is None and not lobby.check_password(password):
            raise WrongPassword()
        player = roster.join(lobby, user)
        events.append(RosterChanged(player_id=player.id, is_active=True))
        game = ChronologyGame.query.filter_by(lobby_id=lobby.id).populate_existing().with_for_update().first()
        if game is not None:
            next_player = _pass_turn_if_vacant(game)
            if next_player is not None:
                events.append(TurnAdvanced(player_id=next_player.id))
    current_app.logger.info(f"[join] lobby={lobby_id} player={player.id} user={user.id}")
    publish(lobby_id, events)
    return player


def leave_lobby(lobby_id: int, user: User) -> Player:
    events: List[GameEvent] = []
    with game_transaction(lobby_id):
        get_lobby(lobby_id)
        player = require_player(lobby_id, user)
        roster.leave(player)
        events.append(RosterChanged(player_id=player.id, is_active=False))
        game = ChronologyGame.query.filter_by(lobby_id=lobby_id).populate_existing().with_for_update().first()
        if game is not None:
            next_player = _pass_turn_if_vacant(game)
            if next_player is not None:
                events.append(TurnAdvanced(player_id=next_player.id))
    current_app.logger.info(f"[leave] lobby={lobby_id} player={player.id} user={user.id}")
    publish(lobby_id, events)
    return player


def _finish_without_winner(game: ChronologyGame) -> None:
    current_card_slot.clear(game)
    game.status = STATUS_FINISHED
    game.current_player_id = None
    game.winner_id = None
    db.session.flush()
    current_app.logger.info(f"[exhausted] game={game.id} draw pile empty, finished without a winner")


def start_game(lobby_id: int, user: User) -> StartResult:
    """Deal one card to every active player and open the first turn."""
    with game_transaction(lobby_id):
        game = get_game(lobby_id, for_update=True)
        require_player(lobby_id, user, active=True)
        if game.status != STATUS_WAITING:
            raise AlreadyStarted()

        seats = roster.active_players(lobby_id)
        if not seats:
            raise NoActivePlayers()
        available = draw_pile.undrawn_count(game)
        if available < len(seats):
            raise InsufficientCards(
                f'Not enough cards to deal: {available} left for {len(seats)} players'
            )

        # Starting cards are dealt without a correctness check
        for player in seats:
            entry = draw_pile.take_random(game)
            timeline.insert(game.id, player.id, entry.year, entry.card_id, 0)

        game.status = STATUS_ACTIVE
        turns.set_current_player(game, seats[0].id)
        result = StartResult(first_player_id=seats[0].id)
        result.events.append(GameStarted(first_player_id=seats[0].id))

        try:
            draw_pile.draw_random(game)
        except DrawPileExhausted:
            _finish_without_winner(game)
            result.first_player_id = None
            result.draw_pile_exhausted = True
            result.events.append(GameFinished(winner_id=None, winner_name=None))

    current_app.logger.info(
        f"[start] lobby={lobby_id} game={game.id} players={len(seats)} exhausted={result.draw_pile_exhausted}"
    )
    publish(lobby_id, result.events)
    return result


def place_card(game: ChronologyGame, player: Player, position: int, card_id: int) -> bool:
    """Judge and apply a placement of the current card.

    ``card_id`` names the card the player meant to place; any other card in
    the slot, or none at all, fails with ``NoCardToPlace``.

    A correct placement is inserted into the player's timeline, a wrong one
    is discarded. The current card is consumed either way.
    """
    card = current_card_slot.get(game)
    if card is None or card.card_id != card_id:
        raise NoCardToPlace()

    years = timeline.years(game.id, player.id)
    correct = timeline.is_correct_placement(card.year, position, years)
    if correct:
        timeline.insert(game.id, player.id, card.year, card.card_id, position)
    current_card_slot.clear(game)
    return correct


def play_turn(lobby_id: int, user: User, position: int, card_id: int) -> TurnResult:
    """Run a full turn for the requesting player.

    Place the current card, check for a winner, pass the turn and draw the
    next card. An empty draw pile on the redraw ends the game without a
    winner. A request for a card that is no longer current fails with
    ``NoCardToPlace`` before turn ownership is considered, so a retried or
    duplicated placement never consumes the next card.
    """
    with game_transaction(lobby_id):
        game = get_game(lobby_id, for_update=True)
        player = require_player(lobby_id, user)
        if game.status != STATUS_ACTIVE:
            raise NotActive()
        card = current_card_slot.get(game)
        if card is None or card.card_id != card_id:
            raise NoCardToPlace()
        if game.current_player_id != player.id:
            raise NotYourTurn()

        correct = place_card(game, player, position, card_id)
        result = TurnResult(correct=correct, message='')

        winner = check_winner(game)
        if winner is not None:
            result.winner_id = winner.id
            result.winner_name = winner.name
            result.message = 'You win!' if winner.id == player.id else f'{winner.name} wins!'
            result.events.append(CardPlaced(player.id, player.name, correct, result.message))
            result.events.append(GameFinished(winner_id=winner.id, winner_name=winner.name))
        else:
            next_player = turns.advance_turn(game)
            try:
                draw_pile.draw_random(game)
            except DrawPileExhausted:
                _finish_without_winner(game)
                result.draw_pile_exhausted = True
                result.message = 'Correct! No more cards.' if correct else 'Incorrect. No more cards.'
                result.events.append(CardPlaced(player.id, player.name, correct, 'Correct!' if correct else 'Wrong!'))
                result.events.append(GameFinished(winner_id=None, winner_name=None))
            else:
                result.next_player_id = next_player.id
                result.message = "Correct! Next player's turn." if correct else "Incorrect. Next player's turn."
                result.events.append(CardPlaced(player.id, player.name, correct, 'Correct!' if correct else 'Wrong!'))
                result.events.append(TurnAdvanced(player_id=next_player.id))

    current_app.logger.info(
        f"[turn] lobby={lobby_id} game={game.id} player={player.id} position={position} "
        f"correct={correct} winner={result.winner_id} next={result.next_player_id}"
    )
    publish(lobby_id, result.events)
    return result


def reset_game(lobby_id: int, user: User) -> ChronologyGame:
    """Return a finished game to the waiting room with a full draw pile."""
    with game_transaction(lobby_id):
        game = get_game(lobby_id, for_update=True)
        require_player(lobby_id, user, active=True)
        if game.status != STATUS_FINISHED:
            raise NotFinished()

        timeline.clear_all(game.id)
        current_card_slot.clear(game)
        draw_pile.replenish_all(game)
        game.status = STATUS_WAITING
        game.current_player_id = None
        game.winner_id = None
        db.session.flush()

    current_app.logger.info(f"[reset] lobby={lobby_id} game={game.id}")
    publish(lobby_id, [GameReset()])
    return game
