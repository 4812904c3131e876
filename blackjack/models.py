from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .cards import Card, Deck


class GamePhase(str, Enum):
    BETTING = "BETTING"
    PLAYER_TURNS = "PLAYER_TURNS"
    DEALER_TURN = "DEALER_TURN"
    GAME_OVER = "GAME_OVER"


class PlayerType(str, Enum):
    HUMAN = "HUMAN"
    AI = "AI"


class AIModel(str, Enum):
    GEMINI_1_5_FLASH = "gemini-1.5-flash-latest"
    LLAMA3_70B = "llama3-70b-8192"
    LLAMA3_8B = "llama3-8b-8192"


class ThinkingAction(str, Enum):
    BETTING = "BETTING"
    PLAYING = "PLAYING"


DEFAULT_AI_MODEL = AIModel.LLAMA3_8B
DEALER_ID = "dealer"
MAX_SEATS = 4


@dataclass
class TableConfig:
    max_players: int = 4
    starting_chips: int = 1_000
    dealer_stands_on: int = 17
    dealer_delay_ms: int = 1_500
    ai_bet_delay_ms: int = 800
    ai_turn_delay_ms: int = 1_200
    ai_timeout_ms: int = 10_000
    default_ai_model: AIModel = DEFAULT_AI_MODEL
    auto_deal: bool = False
    auto_next_round: bool = False
    gateway_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not 1 <= self.max_players <= MAX_SEATS:
            raise ValueError(f"max_players must be between 1 and {MAX_SEATS}")


@dataclass(frozen=True)
class AIThinking:
    player_id: str
    action: ThinkingAction


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    chips: int
    hand: Tuple[Card, ...] = ()
    score: int = 0
    has_busted: bool = False
    has_blackjack: bool = False
    has_stood: bool = False
    bet: int = 0
    is_active: bool = False
    player_type: PlayerType = PlayerType.HUMAN
    ai_model: Optional[AIModel] = None
    result_message: Optional[str] = None

    @property
    def is_ai(self) -> bool:
        return self.player_type == PlayerType.AI

    @property
    def is_done(self) -> bool:
        return self.has_stood or self.has_busted


@dataclass(frozen=True)
class Dealer:
    id: str = DEALER_ID
    name: str = "Dealer"
    hand: Tuple[Card, ...] = ()
    score: int = 0
    has_busted: bool = False
    has_blackjack: bool = False
    has_stood: bool = False
    is_active: bool = False

    @property
    def up_card(self) -> Optional[Card]:
        return next((card for card in self.hand if card.face_up), None)


@dataclass(frozen=True)
class GameState:
    # Replaced wholesale on every transition; nothing mutates it in place.
    players: Tuple[Player, ...]
    deck: Deck = ()
    dealer: Dealer = field(default_factory=Dealer)
    current_player_index: int = 0
    game_phase: GamePhase = GamePhase.BETTING
    is_player_turn: bool = True
    message: str = ""
    round: int = 0
    ai_is_thinking: Optional[AIThinking] = None

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((player for player in self.players if player.id == player_id), None)
