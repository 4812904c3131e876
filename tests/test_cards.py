import random

import pytest

from blackjack.cards import (
    CardValue,
    Suit,
    calculate_score,
    create_deck,
    draw_card,
    has_busted,
    is_blackjack,
    shuffle_deck,
)

from .helpers import card, cards


def test_create_deck_has_52_unique_cards():
    deck = create_deck(random.Random(1))
    assert len(deck) == 52
    assert len({(c.suit, c.value) for c in deck}) == 52
    assert len({c.id for c in deck}) == 52
    assert all(c.face_up for c in deck)


def test_create_deck_is_shuffled_deterministically_by_seed():
    first = [(c.suit, c.value) for c in create_deck(random.Random(5))]
    second = [(c.suit, c.value) for c in create_deck(random.Random(5))]
    ordered = [(suit, value) for suit in Suit for value in CardValue]
    assert first == second
    assert first != ordered


def test_shuffle_keeps_every_card():
    deck = cards("A", "2", "3", "4", "5")
    shuffled = shuffle_deck(deck, random.Random(3))
    assert sorted(c.value.value for c in shuffled) == sorted(c.value.value for c in deck)


def test_draw_card_takes_from_the_top_and_refreshes_id():
    deck = (card("2"), card("K", Suit.HEARTS))
    drawn, remaining = draw_card(deck, face_up=False, rng=random.Random(0))
    assert drawn.value == CardValue.KING
    assert drawn.suit == Suit.HEARTS
    assert drawn.face_up is False
    assert drawn.id != deck[-1].id
    assert remaining == (deck[0],)


def test_draw_card_on_empty_deck_regenerates():
    drawn, remaining = draw_card((), rng=random.Random(9))
    assert len(remaining) == 51
    pairs = {(c.suit, c.value) for c in remaining}
    assert (drawn.suit, drawn.value) not in pairs
    assert len(pairs) == 51


@pytest.mark.parametrize(
    "values, expected",
    [
        (("K", "Q"), 20),
        (("A", "K"), 21),
        (("A", "A"), 12),
        (("A", "A", "9"), 21),
        (("A", "5", "A"), 17),
        (("A", "A", "K"), 12),
        (("K", "Q", "5"), 25),
        (("A", "6", "K"), 17),
        (("J", "10", "A"), 21),
        ((), 0),
    ],
)
def test_calculate_score(values, expected):
    assert calculate_score(cards(*values)) == expected


def test_face_down_card_does_not_count_until_revealed():
    hand = (card("A"), card("K", face_up=False))
    assert calculate_score(hand) == 11
    assert is_blackjack(hand) is False
    assert calculate_score((card("A"), card("K"))) == 21


def test_blackjack_needs_exactly_two_cards():
    assert is_blackjack(cards("A", "Q"))
    assert not is_blackjack(cards("7", "7", "7"))
    assert not is_blackjack(cards("10", "9"))


def test_has_busted():
    assert has_busted(cards("K", "Q", "2"))
    assert not has_busted(cards("K", "A", "Q"))


def test_score_never_exceeds_31_with_one_more_card():
    rng = random.Random(11)
    for _ in range(500):
        deck = create_deck(rng)
        hand = []
        while calculate_score(hand) < 21:
            hand.append(deck[len(hand)])
        assert calculate_score(hand) <= 31
