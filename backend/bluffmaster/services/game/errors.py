"""Request-rejection errors raised by the game engine.

Each error carries a stable ``code`` so transports can report it to the
acting connection without parsing messages. Validation always happens
before a transition mutates anything, so a raised error means the room is
unchanged.
"""


class GameError(Exception):
    code = 'game_error'
    message = 'Invalid game action'

    def __init__(self, message=None):
        super().__init__(message or self.message)

    def to_dict(self):
        return {'code': self.code, 'message': str(self)}


class RoomNotFound(GameError):
    code = 'room_not_found'
    message = 'Room not found'


class AlreadyStarted(GameError):
    code = 'already_started'
    message = 'Game already started'


class RoomFull(GameError):
    code = 'room_full'
    message = 'Room is full'


class DuplicateJoin(GameError):
    code = 'duplicate_join'
    message = 'Already in room'


class NotHost(GameError):
    code = 'not_host'
    message = 'Only the host can do that'


class InsufficientPlayers(GameError):
    code = 'insufficient_players'
    message = 'Need at least 2 players'


class NotYourTurn(GameError):
    code = 'not_your_turn'
    message = 'Not your turn'


class RankRequired(GameError):
    code = 'rank_required'
    message = 'Must specify a rank'


class InvalidCards(GameError):
    code = 'invalid_cards'
    message = 'Invalid cards'


class NoActiveClaim(GameError):
    code = 'no_active_claim'
    message = 'There is no play to challenge'


class SelfChallengeForbidden(GameError):
    code = 'self_challenge_forbidden'
    message = 'Cannot call bluff on your own play'


class CannotPassNow(GameError):
    code = 'cannot_pass_now'
    message = 'Cannot pass at the start of a round'


class PersistenceError(Exception):
    """Durable store failure; the in-memory room stays authoritative."""
