"""Typed failures raised by the Chronology engine.

Each category carries the HTTP status the API answers with. Exhaustion
errors are expected end states of a game rather than faults, so they are
kept apart from the conflict category and flagged in responses.
"""


class ChronologyError(Exception):
    status_code = 500
    message = 'Chronology engine failure'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'error': self.message}


class ValidationError(ChronologyError):
    status_code = 400
    message = 'Invalid request'


class AuthorizationError(ChronologyError):
    status_code = 403
    message = 'Not allowed'


class NotFoundError(ChronologyError):
    status_code = 404
    message = 'Not found'


class ConflictError(ChronologyError):
    status_code = 409
    message = 'Operation not allowed in the current game state'


class ExhaustionError(ChronologyError):
    status_code = 409
    message = 'Game resources exhausted'

    def to_dict(self):
        return {'error': self.message, 'exhausted': True}


class NoDecksProvided(ValidationError):
    message = 'At least one deck is required'


class InvalidPosition(ValidationError):
    message = 'Invalid position'


class NotAPlayer(AuthorizationError):
    message = 'You are not a player in this lobby'


class NotYourTurn(AuthorizationError):
    message = 'Not your turn'


class WrongPassword(AuthorizationError):
    message = 'Incorrect lobby password'


class LobbyNotFound(NotFoundError):
    message = 'Lobby not found'


class GameNotFound(NotFoundError):
    message = 'Game not found'


class AlreadyStarted(ConflictError):
    message = 'Game has already started'


class NotFinished(ConflictError):
    message = 'Game is not finished'


class NotActive(ConflictError):
    message = 'Game is not in progress'


class NoCardToPlace(ConflictError):
    message = 'There is no card to place'


class DrawPileExhausted(ExhaustionError):
    message = 'The draw pile is empty'


class InsufficientCards(ExhaustionError):
    message = 'Not enough cards to deal a starting card to every player'


class NoActivePlayers(ExhaustionError):
    message = 'No active players'
