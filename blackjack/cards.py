from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple


class Suit(str, Enum):
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"


class CardValue(str, Enum):
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"


SUIT_SYMBOLS = {
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
    Suit.SPADES: "♠",
}

FACE_VALUES = (CardValue.JACK, CardValue.QUEEN, CardValue.KING)

Deck = Tuple["Card", ...]


@dataclass(frozen=True)
class Card:
    suit: Suit
    value: CardValue
    face_up: bool = True
    id: str = ""

    @property
    def label(self) -> str:
        return f"{self.value.value}{SUIT_SYMBOLS[self.suit]}"


def new_id(rng: random.Random) -> str:
    return uuid.UUID(int=rng.getrandbits(128), version=4).hex


def shuffle_deck(cards: Iterable[Card], rng: Optional[random.Random] = None) -> Deck:
    # random.Random is a Fisher-Yates shuffle over a Mersenne Twister; fine for
    # a table game, not for anything with money on it.
    rng = rng or random.Random()
    shuffled = list(cards)
    rng.shuffle(shuffled)
    return tuple(shuffled)


def create_deck(rng: Optional[random.Random] = None) -> Deck:
    rng = rng or random.Random()
    cards = [
        Card(suit=suit, value=value, face_up=True, id=new_id(rng))
        for suit in Suit
        for value in CardValue
    ]
    return shuffle_deck(cards, rng)


def draw_card(
    deck: Sequence[Card],
    face_up: bool = True,
    rng: Optional[random.Random] = None,
) -> Tuple[Card, Deck]:
    """Take the top (last) card; an empty deck is replaced by a fresh shuffled one."""
    rng = rng or random.Random()
    remaining = tuple(deck) if deck else create_deck(rng)
    top = remaining[-1]
    return replace(top, face_up=face_up, id=new_id(rng)), remaining[:-1]


def card_points(card: Card) -> int:
    """Hard value of a single card; aces count 1 here."""
    if card.value == CardValue.ACE:
        return 1
    if card.value in FACE_VALUES:
        return 10
    return int(card.value.value)


def calculate_score(hand: Iterable[Card]) -> int:
    score = 0
    aces = 0
    for card in hand:
        if not card.face_up:
            continue
        if card.value == CardValue.ACE:
            aces += 1
        else:
            score += card_points(card)

    # Every ace counts 1; at most one of them can be promoted to 11.
    score += aces
    if aces and score + 10 <= 21:
        score += 10
    return score


def is_blackjack(hand: Sequence[Card]) -> bool:
    return len(hand) == 2 and calculate_score(hand) == 21


def has_busted(hand: Iterable[Card]) -> bool:
    return calculate_score(hand) > 21


def reveal(hand: Iterable[Card]) -> Tuple[Card, ...]:
    return tuple(card if card.face_up else replace(card, face_up=True) for card in hand)
