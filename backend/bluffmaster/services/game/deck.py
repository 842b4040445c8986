import random
from typing import List, Optional

SUITS = ('H', 'D', 'C', 'S')
RANKS = ('A', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K')
CARDS_PER_RANK = len(SUITS)
DECK_SIZE = len(RANKS) * CARDS_PER_RANK

_system_random = random.SystemRandom()


def new_deck() -> List[str]:
    """Return the 52 canonical card tokens (rank + suit, e.g. '10H')."""
    return [rank + suit for suit in SUITS for rank in RANKS]


def shuffle(deck: List[str], rng: Optional[random.Random] = None) -> List[str]:
    """Fisher-Yates shuffle into a new list; the input is left untouched."""
    rng = rng or _system_random
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal(deck: List[str], n: int) -> List[List[str]]:
    """Deal round-robin into n hands; earlier hands take the remainder."""
    if n <= 0:
        raise ValueError(f'cannot deal to {n} players')
    hands: List[List[str]] = [[] for _ in range(n)]
    for index, card in enumerate(deck):
        hands[index % n].append(card)
    return hands


def rank_of(card: str) -> str:
    return card[:-1]


def is_valid_card(card) -> bool:
    return isinstance(card, str) and len(card) in (2, 3) and card[-1] in SUITS and card[:-1] in RANKS


def normalize_rank(rank) -> Optional[str]:
    """Uppercase and strip a declared rank; None when it is not a real rank."""
    if rank is None:
        return None
    value = str(rank).strip().upper()
    return value if value in RANKS else None
