"""Authoritative room engine.

Every public method is one state transition for one room. Transitions run
under that room's lock, validate before touching anything, and return an
``Outcome`` listing the events the transport should deliver. The engine
never talks to the transport itself.
"""

import logging
import random
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import bot as bot_policy
from .deck import DECK_SIZE, deal, is_valid_card, new_deck, normalize_rank, rank_of, shuffle
from .errors import (
    AlreadyStarted,
    CannotPassNow,
    DuplicateJoin,
    InsufficientPlayers,
    InvalidCards,
    NoActiveClaim,
    NotHost,
    NotYourTurn,
    PersistenceError,
    RankRequired,
    RoomFull,
    RoomNotFound,
    SelfChallengeForbidden,
)
from .state import Claim, ControllerKind, Player, Room, RoomPhase
from .store import RoomStore


@dataclass
class Event:
    name: str
    payload: Any = None
    # Connection id for a private event, None to broadcast to the room
    to: Optional[str] = None


@dataclass
class Outcome:
    room_code: str
    events: List[Event] = field(default_factory=list)
    player_id: Optional[str] = None
    game_over: bool = False
    room_closed: bool = False
    persistence_error: Optional[Exception] = None

    def emit(self, name: str, payload: Any = None, to: Optional[str] = None) -> None:
        self.events.append(Event(name, payload, to))

    def names(self) -> List[str]:
        return [e.name for e in self.events]


class GameEngine:
    def __init__(self, store: Optional[RoomStore] = None, persistence=None,
                 rng: Optional[random.Random] = None, logger=None, min_players: int = 2):
        self.store = store if store is not None else RoomStore()
        self.persistence = persistence
        self.rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)
        self.min_players = max(2, int(min_players))

    # ---- Lookup ----

    def get_room(self, code: str) -> Optional[Room]:
        code = _clean_code(code)
        with self.store.lock(code):
            return self._load(code)

    def bot_to_move(self, code: str) -> bool:
        room = self.store.get(_clean_code(code))
        if not room or not room.started:
            return False
        current = room.current_player
        return current is not None and current.is_bot

    # ---- Lobby ----

    def join(self, code: str, player_name: str, conn_ref: str) -> Outcome:
        code = _clean_code(code)
        with self.store.lock(code):
            outcome = Outcome(code)
            room = self._load(code, outcome)
            if room is None:
                room = Room(code=code, host_id=conn_ref)
                self.logger.info(f"[room-created] room={code} host={conn_ref}")
            if room.phase != RoomPhase.WAITING:
                raise AlreadyStarted()
            if room.find_by_conn(conn_ref):
                raise DuplicateJoin()
            if len(room.players) >= DECK_SIZE:
                raise RoomFull()

            name = (player_name or '').strip() or f"Player {len(room.players) + 1}"
            player = Player(id=conn_ref, name=name, conn_ref=conn_ref)
            room.players.append(player)
            if not room.get_player(room.host_id):
                room.host_id = player.id
            self.store.put(room)

            outcome.player_id = player.id
            outcome.emit('player-id', player.id, to=conn_ref)
            outcome.emit('room-joined', {'players': player_info(room)})
            outcome.emit('game-state', public_state(room))
            self.logger.info(f"[join] room={code} player={player.id} name={name!r} seats={len(room.players)}")
            self._persist(room, outcome)
            return outcome

    def add_bot(self, code: str, requester_id: str) -> Outcome:
        code = _clean_code(code)
        with self.store.lock(code):
            outcome = Outcome(code)
            room = self._require(code, outcome)
            if room.phase != RoomPhase.WAITING:
                raise AlreadyStarted()
            if requester_id != room.host_id:
                raise NotHost('Only the host can add bots')
            if len(room.players) >= DECK_SIZE:
                raise RoomFull()

            number = sum(1 for p in room.players if p.is_bot) + 1
            bot = Player(id=f"bot-{uuid.uuid4().hex[:8]}", name=f"Bot {number}",
                         controller=ControllerKind.BOT)
            room.players.append(bot)

            outcome.player_id = bot.id
            outcome.emit('room-joined', {'players': player_info(room)})
            outcome.emit('game-state', public_state(room))
            self.logger.info(f"[add-bot] room={code} bot={bot.id}")
            self._persist(room, outcome)
            return outcome

    def start(self, code: str, requester_id: str) -> Outcome:
        code = _clean_code(code)
        with self.store.lock(code):
            outcome = Outcome(code)
            room = self._require(code, outcome)
            if room.phase != RoomPhase.WAITING:
                raise AlreadyStarted()
            if requester_id != room.host_id:
                raise NotHost('Only host can start game')
            if len(room.players) < self.min_players:
                raise InsufficientPlayers(f"Need at least {self.min_players} players")

            hands = deal(shuffle(new_deck(), self.rng), len(room.players))
            for player, hand in zip(room.players, hands):
                player.hand = hand
                player.finished = False
            room.phase = RoomPhase.IN_PROGRESS
            room.current_player_index = 0
            room.current_rank = None
            room.pile = []
            room.discard = []
            room.last_play = None
            room.passed = set()
            room.finish_order = []
            room.winner_id = None

            for player in room.players:
                if player.conn_ref:
                    outcome.emit('your-cards', list(player.hand), to=player.conn_ref)
            outcome.emit('game-started', {'players': player_info(room)})
            outcome.emit('game-state', public_state(room))
            self.logger.info(f"[start] room={code} players={len(room.players)}")
            self._persist(room, outcome)
            return outcome

    # ---- Turns ----

    def play(self, code: str, actor_id: str, cards, claimed_rank=None) -> Outcome:
        code = _clean_code(code)
        with self.store.lock(code):
            outcome = Outcome(code)
            room = self._require(code, outcome)
            actor = self._require_turn(room, actor_id)

            declared = normalize_rank(claimed_rank)
            if not room.current_rank and declared is None:
                raise RankRequired()
            cards = list(cards or [])
            if not cards or not all(is_valid_card(c) for c in cards):
                raise InvalidCards()
            if Counter(cards) - Counter(actor.hand):
                raise InvalidCards()

            for card in cards:
                actor.hand.remove(card)
            room.pile.extend(cards)
            # Only the opening declaration binds the round
            if not room.current_rank:
                room.current_rank = declared
            shown_rank = str(claimed_rank).strip().upper() if claimed_rank else room.current_rank
            room.last_play = Claim(player_id=actor.id, cards=cards,
                                   claimed_rank=room.current_rank, declared_rank=shown_rank)
            room.passed.clear()

            outcome.emit('play-made', {
                'playerId': actor.id,
                'playerName': actor.name,
                'count': len(cards),
                'rank': shown_rank,
            })
            if actor.conn_ref:
                outcome.emit('your-cards', list(actor.hand), to=actor.conn_ref)
            if not actor.hand:
                actor.finished = True
                room.finish_order.append(actor.id)
                outcome.emit('player-finished', {
                    'playerId': actor.id,
                    'playerName': actor.name,
                    'place': len(room.finish_order),
                })
                self.logger.info(f"[finished] room={code} player={actor.id} place={len(room.finish_order)}")

            self.logger.info(
                f"[play] room={code} player={actor.id} count={len(cards)} rank={room.current_rank} declared={shown_rank}"
            )
            if not self._end_if_over(room, outcome):
                room.current_player_index = self._next_active_index(room, room.current_player_index)
            outcome.emit('game-state', public_state(room))
            self._persist(room, outcome)
            return outcome

    def call_bluff(self, code: str, caller_id: str) -> Outcome:
        code = _clean_code(code)
        with self.store.lock(code):
            outcome = Outcome(code)
            room = self._require(code, outcome)
            if not room.started or not room.last_play:
                raise NoActiveClaim()
            caller = room.get_player(caller_id)
            if caller is None:
                raise NotYourTurn('You are not seated in this room')
            claim = room.last_play
            claimant = room.get_player(claim.player_id)
            if claimant is None:
                raise NoActiveClaim()
            if caller.id == claimant.id and not claimant.finished:
                raise SelfChallengeForbidden()

            was_bluff = any(rank_of(card) != claim.claimed_rank for card in claim.cards)
            loser, winner = (claimant, caller) if was_bluff else (caller, claimant)

            loser.hand.extend(room.pile)
            if loser.finished and loser.hand:
                loser.finished = False
                if loser.id in room.finish_order:
                    room.finish_order.remove(loser.id)
            self._reset_round(room)

            outcome.emit('bluff-called', {
                'callerId': caller.id,
                'callerName': caller.name,
                'lastPlayerId': claimant.id,
                'lastPlayerName': claimant.name,
                'wasBluff': was_bluff,
                'penalizedPlayerId': loser.id,
                'penalizedPlayerName': loser.name,
                'revealedCards': list(claim.cards),
            })
            if loser.conn_ref:
                outcome.emit('your-cards', list(loser.hand), to=loser.conn_ref)
            self.logger.info(
                f"[bluff] room={code} caller={caller.id} claimant={claimant.id} was_bluff={was_bluff} penalized={loser.id}"
            )

            if not self._end_if_over(room, outcome):
                room.current_player_index = self._next_active_index(
                    room, room.index_of(winner.id), include_start=True)
            outcome.emit('game-state', public_state(room))
            self._persist(room, outcome)
            return outcome

    def pass_turn(self, code: str, actor_id: str) -> Outcome:
        code = _clean_code(code)
        with self.store.lock(code):
            outcome = Outcome(code)
            room = self._require(code, outcome)
            actor = self._require_turn(room, actor_id)
            if not room.current_rank:
                raise CannotPassNow()

            room.passed.add(actor.id)
            outcome.emit('player-passed', {'playerId': actor.id, 'playerName': actor.name})
            self.logger.info(f"[pass] room={code} player={actor.id} passed={len(room.passed)}")

            if len(room.passed) >= len(room.active_players()) - 1:
                opener = self._first_unpassed_index(room)
                room.discard.extend(room.pile)
                room.pile = []
                self._reset_round(room)
                room.current_player_index = opener
                starter = room.players[opener]
                outcome.emit('round-ended', {'starterId': starter.id, 'starterName': starter.name})
                self.logger.info(f"[round-ended] room={code} starter={starter.id}")
                self._end_if_over(room, outcome)
            else:
                room.current_player_index = self._next_active_index(room, room.current_player_index)
            outcome.emit('game-state', public_state(room))
            self._persist(room, outcome)
            return outcome

    def run_bot_turn(self, code: str) -> Outcome:
        """Apply one move for the bot holding the turn; no-op for anyone else."""
        code = _clean_code(code)
        with self.store.lock(code):
            room = self.store.get(code)
            if not room or not room.started:
                return Outcome(code)
            current = room.current_player
            if current is None or not current.is_bot:
                return Outcome(code)

            move = bot_policy.decide(room, current.id, self.rng)
            self.logger.info(f"[bot] room={code} bot={current.id} action={move.action.value}")
            if move.action == bot_policy.BotAction.CALL_BLUFF:
                return self.call_bluff(code, current.id)
            if move.action == bot_policy.BotAction.PASS:
                return self.pass_turn(code, current.id)
            return self.play(code, current.id, move.cards, move.claimed_rank)

    # ---- Connections ----

    def disconnect(self, code: str, conn_ref: str) -> Outcome:
        code = _clean_code(code)
        with self.store.lock(code):
            outcome = Outcome(code)
            room = self.store.get(code)
            player = room.find_by_conn(conn_ref) if room else None
            if player is None:
                return outcome

            room.players.remove(player)
            room.passed.discard(player.id)
            if player.id in room.finish_order:
                room.finish_order.remove(player.id)
            self.logger.info(f"[leave] room={code} player={player.id} remaining={len(room.players)}")

            if not room.humans():
                self._destroy(room, outcome)
                return outcome

            if room.host_id == player.id:
                room.host_id = room.humans()[0].id
            if room.started:
                if room.last_play and room.last_play.player_id == player.id:
                    room.last_play = None
                # Clamped to the first seat, not to the next player in order
                if room.current_player_index >= len(room.players):
                    room.current_player_index = 0
                if not self._end_if_over(room, outcome):
                    room.current_player_index = self._next_active_index(
                        room, room.current_player_index, include_start=True)

            outcome.emit('room-joined', {'players': player_info(room)})
            outcome.emit('game-state', public_state(room))
            self._persist(room, outcome)
            return outcome

    def discard_room(self, code: str) -> Outcome:
        code = _clean_code(code)
        with self.store.lock(code):
            outcome = Outcome(code)
            room = self.store.get(code) or Room(code=code)
            self._destroy(room, outcome)
            return outcome

    # ---- Internals ----

    def _load(self, code: str, outcome: Optional[Outcome] = None) -> Optional[Room]:
        room = self.store.get(code)
        if room is not None or self.persistence is None:
            return room
        try:
            room = self.persistence.load(code)
        except PersistenceError as exc:
            self.logger.warning(f"[persist-load-failed] room={code} error={exc}")
            if outcome is not None:
                outcome.persistence_error = exc
            return None
        if room is None:
            return None
        if room.phase == RoomPhase.ENDED:
            self.logger.info(f"[room-dropped] room={code} snapshot of a finished match")
            self._forget(code)
            return None
        self.logger.info(f"[room-restored] room={code} phase={room.phase.value}")
        self.store.put(room)
        return room

    def _require(self, code: str, outcome: Outcome) -> Room:
        room = self._load(code, outcome)
        if room is None:
            raise RoomNotFound()
        return room

    def _require_turn(self, room: Room, actor_id: str) -> Player:
        if not room.started:
            raise NotYourTurn('Game is not in progress')
        current = room.current_player
        if current is None or current.id != actor_id:
            raise NotYourTurn()
        return current

    def _persist(self, room: Room, outcome: Outcome) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.save(room)
        except PersistenceError as exc:
            self.logger.warning(f"[persist-save-failed] room={room.code} error={exc}")
            outcome.persistence_error = exc

    def _destroy(self, room: Room, outcome: Outcome) -> None:
        self.store.remove(room.code)
        outcome.room_closed = True
        self.logger.info(f"[room-closed] room={room.code}")
        error = self._forget(room.code)
        if error is not None:
            outcome.persistence_error = error

    def _forget(self, code: str) -> Optional[PersistenceError]:
        if self.persistence is None:
            return None
        try:
            self.persistence.delete(code)
        except PersistenceError as exc:
            self.logger.warning(f"[persist-delete-failed] room={code} error={exc}")
            return exc
        return None

    @staticmethod
    def _reset_round(room: Room) -> None:
        room.pile = []
        room.last_play = None
        room.current_rank = None
        room.passed.clear()

    @staticmethod
    def _next_active_index(room: Room, start: int, include_start: bool = False) -> int:
        count = len(room.players)
        offsets = range(count) if include_start else range(1, count + 1)
        for offset in offsets:
            index = (start + offset) % count
            if not room.players[index].finished:
                return index
        raise RuntimeError(f"room {room.code}: no active player to take the turn")

    @staticmethod
    def _first_unpassed_index(room: Room) -> int:
        count = len(room.players)
        for offset in range(count):
            index = (room.current_player_index + offset) % count
            player = room.players[index]
            if not player.finished and player.id not in room.passed:
                return index
        return room.current_player_index

    def _end_if_over(self, room: Room, outcome: Outcome) -> bool:
        """End the match once at most one player holds cards.

        A finished player's claim stays open to a challenge, so the match
        waits while it is still the outstanding claim.
        """
        active = room.active_players()
        if len(active) > 1:
            return False
        if active and room.last_play:
            claimant = room.get_player(room.last_play.player_id)
            if claimant is not None and claimant.finished:
                return False

        board = room.leaderboard()
        room.phase = RoomPhase.ENDED
        room.winner_id = board[0] if board else None
        winner = room.get_player(room.winner_id)
        outcome.game_over = True
        outcome.emit('game-over', {
            'winnerId': room.winner_id,
            'winnerName': winner.name if winner else None,
            'leaderboard': [room.get_player(pid).name for pid in board],
            'leaderboardIds': board,
        })
        self.logger.info(f"[game-over] room={room.code} winner={room.winner_id} leaderboard={board}")
        return True


def _clean_code(code) -> str:
    value = str(code or '').strip().upper()
    if not value:
        raise RoomNotFound('Room code is required')
    return value


def player_info(room: Room) -> List[Dict[str, Any]]:
    return [
        {
            'id': p.id,
            'name': p.name,
            'cardCount': len(p.hand),
            'isActive': not p.finished,
            'finished': p.finished,
            'isBot': p.is_bot,
            'isHost': p.id == room.host_id,
        }
        for p in room.players
    ]


def public_state(room: Room) -> Dict[str, Any]:
    """Snapshot safe to broadcast: card counts only, never another player's hand."""
    claim = room.last_play
    claimant = room.get_player(claim.player_id) if claim else None
    current = room.current_player if room.started else None
    winner = room.get_player(room.winner_id)
    ended = room.phase == RoomPhase.ENDED
    return {
        'roomCode': room.code,
        'players': player_info(room),
        'currentPlayerIndex': room.current_player_index,
        'currentPlayerId': current.id if current else None,
        'currentRank': room.current_rank,
        'pileCount': len(room.pile),
        'discardCount': len(room.discard),
        'lastPlay': {
            'playerId': claim.player_id,
            'playerName': claimant.name if claimant else '',
            'count': len(claim.cards),
            'rank': claim.claimed_rank,
        } if claim else None,
        'canCallBluff': room.started and claim is not None,
        'canPass': room.started and room.current_rank is not None,
        'roundEnded': room.started and room.current_rank is None and not room.pile,
        'started': room.started,
        'phase': room.phase.value,
        'hostId': room.host_id,
        'winner': winner.name if winner else None,
        'winnerId': room.winner_id,
        'leaderboard': [room.get_player(pid).name for pid in room.leaderboard()] if ended else [],
    }
