"""Room state: the aggregate the engine mutates for one match."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class ControllerKind(str, Enum):
    HUMAN = 'human'
    BOT = 'bot'


class RoomPhase(str, Enum):
    WAITING = 'waiting'
    IN_PROGRESS = 'in_progress'
    ENDED = 'ended'


@dataclass
class Player:
    id: str
    name: str
    controller: ControllerKind = ControllerKind.HUMAN
    conn_ref: Optional[str] = None
    hand: List[str] = field(default_factory=list)
    # Emptied their hand; skipped for turns until they pick cards up again
    finished: bool = False

    @property
    def is_bot(self) -> bool:
        return self.controller == ControllerKind.BOT

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'controller': self.controller.value,
            'conn_ref': self.conn_ref,
            'hand': list(self.hand),
            'finished': self.finished,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        return cls(
            id=data['id'],
            name=data['name'],
            controller=ControllerKind(data.get('controller', ControllerKind.HUMAN.value)),
            conn_ref=data.get('conn_ref'),
            hand=list(data.get('hand') or []),
            finished=bool(data.get('finished', False)),
        )


@dataclass
class Claim:
    """The outstanding play: cards actually surrendered and the rank they are filed under.

    ``claimed_rank`` is the round's binding rank and is what a bluff call is
    judged against. ``declared_rank`` is whatever the player typed and is only
    echoed back in the play-made event.
    """
    player_id: str
    cards: List[str]
    claimed_rank: str
    declared_rank: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'player_id': self.player_id,
            'cards': list(self.cards),
            'claimed_rank': self.claimed_rank,
            'declared_rank': self.declared_rank,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Claim':
        return cls(
            player_id=data['player_id'],
            cards=list(data['cards']),
            claimed_rank=data['claimed_rank'],
            declared_rank=data.get('declared_rank'),
        )


@dataclass
class Room:
    code: str
    players: List[Player] = field(default_factory=list)
    current_player_index: int = 0
    current_rank: Optional[str] = None
    pile: List[str] = field(default_factory=list)
    # Cards set aside when a round ends because everybody passed
    discard: List[str] = field(default_factory=list)
    last_play: Optional[Claim] = None
    passed: Set[str] = field(default_factory=set)
    finish_order: List[str] = field(default_factory=list)
    phase: RoomPhase = RoomPhase.WAITING
    host_id: Optional[str] = None
    winner_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    @property
    def started(self) -> bool:
        return self.phase == RoomPhase.IN_PROGRESS

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def find_by_conn(self, conn_ref: str) -> Optional[Player]:
        for p in self.players:
            if p.conn_ref is not None and p.conn_ref == conn_ref:
                return p
        return None

    def index_of(self, player_id: str) -> int:
        for i, p in enumerate(self.players):
            if p.id == player_id:
                return i
        return -1

    def active_players(self) -> List[Player]:
        return [p for p in self.players if not p.finished]

    def humans(self) -> List[Player]:
        return [p for p in self.players if not p.is_bot]

    def cards_in_play(self) -> int:
        return sum(len(p.hand) for p in self.players) + len(self.pile) + len(self.discard)

    def leaderboard(self) -> List[str]:
        """Finish order followed by anyone still holding cards, in seat order."""
        board = [pid for pid in self.finish_order if self.get_player(pid)]
        board.extend(p.id for p in self.players if p.id not in board)
        return board

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'players': [p.to_dict() for p in self.players],
            'current_player_index': self.current_player_index,
            'current_rank': self.current_rank,
            'pile': list(self.pile),
            'discard': list(self.discard),
            'last_play': self.last_play.to_dict() if self.last_play else None,
            'passed': sorted(self.passed),
            'finish_order': list(self.finish_order),
            'phase': self.phase.value,
            'host_id': self.host_id,
            'winner_id': self.winner_id,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Room':
        last_play = data.get('last_play')
        return cls(
            code=data['code'],
            players=[Player.from_dict(p) for p in data.get('players') or []],
            current_player_index=int(data.get('current_player_index') or 0),
            current_rank=data.get('current_rank'),
            pile=list(data.get('pile') or []),
            discard=list(data.get('discard') or []),
            last_play=Claim.from_dict(last_play) if last_play else None,
            passed=set(data.get('passed') or []),
            finish_order=list(data.get('finish_order') or []),
            phase=RoomPhase(data.get('phase', RoomPhase.WAITING.value)),
            host_id=data.get('host_id'),
            winner_id=data.get('winner_id'),
            created_at=float(data.get('created_at') or time.time()),
        )
