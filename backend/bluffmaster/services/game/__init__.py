"""Game domain services: deck, room state, engine and bot.

This package contains pure game logic with no Flask or Socket.IO imports,
so socket handlers, HTTP routes and tests all drive the same engine while
transport concerns stay outside.
"""

from .engine import Event, GameEngine, Outcome, player_info, public_state
from .errors import GameError, PersistenceError
from .state import Claim, ControllerKind, Player, Room, RoomPhase
from .store import RoomStore

__all__ = [
    'Claim',
    'ControllerKind',
    'Event',
    'GameEngine',
    'GameError',
    'Outcome',
    'PersistenceError',
    'Player',
    'Room',
    'RoomPhase',
    'RoomStore',
    'player_info',
    'public_state',
]
