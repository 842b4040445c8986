"""Heuristic bot player.

The bot looks only at what a seated human could see plus its own hand:
pile size, the outstanding claim and who has passed. Randomness comes from
the ``rng`` argument so callers (and tests) decide how predictable it is.
"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .deck import CARDS_PER_RANK, rank_of
from .state import Player, Room

# Chance of challenging a claim of three or more cards
BIG_CLAIM_CALL_CHANCE = 0.5
# Background suspicion for every other claim
BASELINE_CALL_CHANCE = 0.1
BIG_CLAIM_SIZE = 3
# Above this pile size the bot prefers passing to bluffing
PASS_PILE_THRESHOLD = 5


class BotAction(str, Enum):
    PLAY = 'play'
    PASS = 'pass'
    CALL_BLUFF = 'call-bluff'


@dataclass
class BotMove:
    action: BotAction
    cards: List[str] = field(default_factory=list)
    claimed_rank: Optional[str] = None


def decide(room: Room, bot_id: str, rng: Optional[random.Random] = None) -> BotMove:
    rng = rng or random
    me = room.get_player(bot_id)
    if me is None:
        raise ValueError(f'bot {bot_id} is not seated in room {room.code}')

    if room.last_play and room.last_play.player_id != me.id:
        if should_call_bluff(room, me, rng):
            return BotMove(BotAction.CALL_BLUFF)

    if not room.current_rank:
        rank, cards = opening_group(me.hand)
        return BotMove(BotAction.PLAY, cards=cards, claimed_rank=rank)

    matching = [c for c in me.hand if rank_of(c) == room.current_rank]
    if matching:
        return BotMove(BotAction.PLAY, cards=matching, claimed_rank=room.current_rank)

    can_pass = len(room.passed) < len(room.active_players()) - 1
    if can_pass and len(room.pile) > PASS_PILE_THRESHOLD:
        return BotMove(BotAction.PASS)

    # Bluff with the first card held
    return BotMove(BotAction.PLAY, cards=[me.hand[0]], claimed_rank=room.current_rank)


def should_call_bluff(room: Room, me: Player, rng) -> bool:
    """Decide whether to challenge the outstanding claim.

    - claimant has no cards left: always
    - three or more cards claimed at once: coin flip
    - own cards of that rank plus the claimed count exceed four: always
    - otherwise: rarely
    """
    claim = room.last_play
    if not claim:
        return False

    claimant = room.get_player(claim.player_id)
    if claimant is not None and not claimant.hand:
        return True

    claimed_count = len(claim.cards)
    if claimed_count >= BIG_CLAIM_SIZE:
        return rng.random() < BIG_CLAIM_CALL_CHANCE

    my_count = sum(1 for c in me.hand if rank_of(c) == claim.claimed_rank)
    if my_count + claimed_count > CARDS_PER_RANK:
        return True

    return rng.random() < BASELINE_CALL_CHANCE


def opening_group(hand: List[str]):
    """First rank group in hand order, not necessarily the largest."""
    groups = {}
    for card in hand:
        groups.setdefault(rank_of(card), []).append(card)
    for rank, cards in groups.items():
        return rank, cards
    raise ValueError('cannot open a round with an empty hand')
