import random

import pytest

from bluffmaster.services.game.deck import (
    RANKS,
    deal,
    is_valid_card,
    new_deck,
    normalize_rank,
    rank_of,
    shuffle,
)


def test_new_deck_has_52_unique_cards():
    deck = new_deck()
    assert len(deck) == 52
    assert len(set(deck)) == 52
    assert {'10H', 'AS', 'KD', '2C'} <= set(deck)
    assert all(is_valid_card(c) for c in deck)


def test_shuffle_is_a_permutation_and_leaves_input_alone():
    deck = new_deck()
    shuffled = shuffle(deck, random.Random(3))
    assert deck == new_deck()
    assert sorted(shuffled) == sorted(deck)
    assert shuffled != deck


def test_shuffle_without_rng_varies_between_calls():
    orders = {tuple(shuffle(new_deck())) for _ in range(5)}
    assert len(orders) > 1


def test_deal_round_robin_gives_remainder_to_earliest():
    hands = deal(new_deck(), 3)
    assert [len(h) for h in hands] == [18, 17, 17]
    assert hands[0][:2] == [new_deck()[0], new_deck()[3]]
    assert sorted(c for h in hands for c in h) == sorted(new_deck())


def test_deal_rejects_non_positive_player_count():
    with pytest.raises(ValueError):
        deal(new_deck(), 0)
    with pytest.raises(ValueError):
        deal(new_deck(), -2)


@pytest.mark.parametrize('card,rank', [('10H', '10'), ('AS', 'A'), ('KD', 'K'), ('2C', '2')])
def test_rank_of(card, rank):
    assert rank_of(card) == rank


def test_normalize_rank():
    assert normalize_rank(' k ') == 'K'
    assert normalize_rank('10') == '10'
    assert normalize_rank('Z') is None
    assert normalize_rank('') is None
    assert normalize_rank(None) is None
    assert all(normalize_rank(r.lower()) == r for r in RANKS)


def test_is_valid_card_rejects_garbage():
    assert not is_valid_card('1H')
    assert not is_valid_card('AX')
    assert not is_valid_card('')
    assert not is_valid_card(None)
