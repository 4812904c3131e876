from __future__ import annotations

import random
from dataclasses import replace
from typing import Iterable, Tuple

from blackjack import game
from blackjack.actions import Deal
from blackjack.cards import Card, CardValue, Suit, calculate_score
from blackjack.models import AIModel, Dealer, GamePhase, GameState, Player, PlayerType


def card(value: str, suit: Suit = Suit.SPADES, face_up: bool = True) -> Card:
    return Card(suit=suit, value=CardValue(value), face_up=face_up, id=f"{value}-{suit.value}")


def cards(*values: str) -> Tuple[Card, ...]:
    return tuple(card(value) for value in values)


def stacked_deck(*values: str) -> Tuple[Card, ...]:
    """Deck whose first value is the first card drawn (draws come off the end)."""
    return tuple(reversed(cards(*values)))


def make_player(
    name: str,
    *,
    chips: int = 900,
    bet: int = 100,
    hand: Iterable[str] = (),
    ai: bool = False,
    **overrides,
) -> Player:
    held = cards(*hand)
    return Player(
        id=name.lower(),
        name=name,
        chips=chips,
        bet=bet,
        hand=held,
        score=calculate_score(held),
        player_type=PlayerType.AI if ai else PlayerType.HUMAN,
        ai_model=AIModel.LLAMA3_8B if ai else None,
        **overrides,
    )


def betting_state(*names: str, bet: int = 100, chips: int = 1_000) -> GameState:
    """Table in BETTING where every player has already put ``bet`` down."""
    players = tuple(make_player(name, chips=chips - bet, bet=bet) for name in names)
    return GameState(players=players, message=game.BETTING_MESSAGE)


def playing_state(*players: Player, dealer: Iterable[str] = ("9", "7"), deck: Iterable[str] = ()) -> GameState:
    """Mid-round table: first player to act is active, dealer's second card face down."""
    up, hole = tuple(dealer)
    first = next(idx for idx, p in enumerate(players) if not p.is_done)
    seated = tuple(replace(p, is_active=idx == first) for idx, p in enumerate(players))
    dealer_hand = (card(up), card(hole, face_up=False))
    return GameState(
        players=seated,
        deck=stacked_deck(*deck),
        dealer=Dealer(hand=dealer_hand, score=calculate_score(dealer_hand)),
        current_player_index=first,
        game_phase=GamePhase.PLAYER_TURNS,
        is_player_turn=True,
        round=1,
    )


def deal_with(monkeypatch, state: GameState, *values: str, seed: int = 0) -> GameState:
    """Deal from a stacked deck: players two cards each in order, then the dealer."""
    monkeypatch.setattr(game, "create_deck", lambda rng=None: stacked_deck(*values))
    return game.reduce(state, Deal(), random.Random(seed))
