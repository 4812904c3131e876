"""Blackjack engine primitives shared by the table server and simulations."""

from .actions import ActionKind, parse_action
from .cards import Card, CardValue, Suit, calculate_score, create_deck, draw_card, has_busted, is_blackjack
from .dealer import dealer_play, settle_player
from .game import initial_state, next_active_index, reduce, resolve_dealer_turn, snapshot_payload
from .models import AIModel, Dealer, GamePhase, GameState, Player, PlayerType, TableConfig
from .store import GameStore

__all__ = [
    "ActionKind",
    "parse_action",
    "Card",
    "CardValue",
    "Suit",
    "calculate_score",
    "create_deck",
    "draw_card",
    "has_busted",
    "is_blackjack",
    "dealer_play",
    "settle_player",
    "initial_state",
    "next_active_index",
    "reduce",
    "resolve_dealer_turn",
    "snapshot_payload",
    "AIModel",
    "Dealer",
    "GamePhase",
    "GameState",
    "Player",
    "PlayerType",
    "TableConfig",
    "GameStore",
]
