from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from .cards import Deck
from .models import AIModel, Dealer, Player, PlayerType, ThinkingAction

# Every transition the engine understands. Each action is a frozen dataclass
# tagged with its kind so the reducer can match on it.


class ActionKind(str, Enum):
    PLACE_BET = "PLACE_BET"
    DEAL = "DEAL"
    HIT = "HIT"
    STAND = "STAND"
    RESET = "RESET"
    ADD_PLAYER = "ADD_PLAYER"
    REMOVE_PLAYER = "REMOVE_PLAYER"
    ADD_AI_PLAYER = "ADD_AI_PLAYER"
    TOGGLE_PLAYER_TYPE = "TOGGLE_PLAYER_TYPE"
    START_BETTING_PHASE = "START_BETTING_PHASE"
    PROCESS_DEALER_TURN = "PROCESS_DEALER_TURN"
    SET_AI_THINKING = "SET_AI_THINKING"
    CLEAR_AI_THINKING = "CLEAR_AI_THINKING"
    UPDATE_MESSAGE = "UPDATE_MESSAGE"


# Only the driver may issue these.
INTERNAL_KINDS = frozenset(
    {
        ActionKind.PROCESS_DEALER_TURN,
        ActionKind.SET_AI_THINKING,
        ActionKind.CLEAR_AI_THINKING,
    }
)


@dataclass(frozen=True)
class PlaceBet:
    kind: ClassVar[ActionKind] = ActionKind.PLACE_BET
    player_id: str
    amount: int


@dataclass(frozen=True)
class Deal:
    kind: ClassVar[ActionKind] = ActionKind.DEAL


@dataclass(frozen=True)
class Hit:
    kind: ClassVar[ActionKind] = ActionKind.HIT
    # When set, the action only applies if this player is the one to act.
    player_id: Optional[str] = None


@dataclass(frozen=True)
class Stand:
    kind: ClassVar[ActionKind] = ActionKind.STAND
    player_id: Optional[str] = None


@dataclass(frozen=True)
class Reset:
    kind: ClassVar[ActionKind] = ActionKind.RESET


@dataclass(frozen=True)
class AddPlayer:
    kind: ClassVar[ActionKind] = ActionKind.ADD_PLAYER
    name: str


@dataclass(frozen=True)
class RemovePlayer:
    kind: ClassVar[ActionKind] = ActionKind.REMOVE_PLAYER
    id: str


@dataclass(frozen=True)
class AddAIPlayer:
    kind: ClassVar[ActionKind] = ActionKind.ADD_AI_PLAYER
    model: AIModel


@dataclass(frozen=True)
class TogglePlayerType:
    kind: ClassVar[ActionKind] = ActionKind.TOGGLE_PLAYER_TYPE
    player_id: str
    player_type: PlayerType
    model: Optional[AIModel] = None


@dataclass(frozen=True)
class StartBettingPhase:
    kind: ClassVar[ActionKind] = ActionKind.START_BETTING_PHASE


@dataclass(frozen=True)
class ProcessDealerTurn:
    kind: ClassVar[ActionKind] = ActionKind.PROCESS_DEALER_TURN
    players: Tuple[Player, ...]
    dealer: Dealer
    deck: Deck


@dataclass(frozen=True)
class SetAIThinking:
    kind: ClassVar[ActionKind] = ActionKind.SET_AI_THINKING
    player_id: str
    action: ThinkingAction


@dataclass(frozen=True)
class ClearAIThinking:
    kind: ClassVar[ActionKind] = ActionKind.CLEAR_AI_THINKING


@dataclass(frozen=True)
class UpdateMessage:
    kind: ClassVar[ActionKind] = ActionKind.UPDATE_MESSAGE
    message: str


Action = Union[
    PlaceBet,
    Deal,
    Hit,
    Stand,
    Reset,
    AddPlayer,
    RemovePlayer,
    AddAIPlayer,
    TogglePlayerType,
    StartBettingPhase,
    ProcessDealerTurn,
    SetAIThinking,
    ClearAIThinking,
    UpdateMessage,
]

ACTION_TYPES = (
    PlaceBet,
    Deal,
    Hit,
    Stand,
    Reset,
    AddPlayer,
    RemovePlayer,
    AddAIPlayer,
    TogglePlayerType,
    StartBettingPhase,
    ProcessDealerTurn,
    SetAIThinking,
    ClearAIThinking,
    UpdateMessage,
)


def _require_str(message: Mapping[str, Any], key: str) -> str:
    value = message.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} required")
    return value.strip()


def _optional_str(message: Mapping[str, Any], key: str) -> Optional[str]:
    value = message.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _model(raw: Any) -> AIModel:
    try:
        return AIModel(raw)
    except ValueError:
        raise ValueError(f"Unknown model: {raw}") from None


def parse_action(message: Mapping[str, Any]) -> Action:
    """Decode a client message (``{"action": KIND, ...payload}``) into an action."""
    raw_kind = message.get("action")
    try:
        kind = ActionKind(raw_kind)
    except ValueError:
        raise ValueError(f"Unsupported action {raw_kind}") from None

    if kind == ActionKind.PLACE_BET:
        amount = message.get("amount")
        # bool is an int subclass; reject it explicitly.
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise ValueError("amount must be an integer")
        return PlaceBet(player_id=_require_str(message, "player_id"), amount=amount)
    if kind == ActionKind.DEAL:
        return Deal()
    if kind == ActionKind.HIT:
        return Hit(player_id=_optional_str(message, "player_id"))
    if kind == ActionKind.STAND:
        return Stand(player_id=_optional_str(message, "player_id"))
    if kind == ActionKind.RESET:
        return Reset()
    if kind == ActionKind.ADD_PLAYER:
        return AddPlayer(name=_require_str(message, "name"))
    if kind == ActionKind.REMOVE_PLAYER:
        return RemovePlayer(id=_require_str(message, "id"))
    if kind == ActionKind.ADD_AI_PLAYER:
        return AddAIPlayer(model=_model(message.get("model")))
    if kind == ActionKind.TOGGLE_PLAYER_TYPE:
        try:
            player_type = PlayerType(message.get("player_type"))
        except ValueError:
            raise ValueError("player_type must be HUMAN or AI") from None
        raw_model = message.get("model")
        return TogglePlayerType(
            player_id=_require_str(message, "player_id"),
            player_type=player_type,
            model=_model(raw_model) if raw_model is not None else None,
        )
    if kind == ActionKind.START_BETTING_PHASE:
        return StartBettingPhase()
    if kind == ActionKind.SET_AI_THINKING:
        try:
            thinking = ThinkingAction(message.get("thinking"))
        except ValueError:
            raise ValueError("thinking must be BETTING or PLAYING") from None
        return SetAIThinking(player_id=_require_str(message, "player_id"), action=thinking)
    if kind == ActionKind.CLEAR_AI_THINKING:
        return ClearAIThinking()
    if kind == ActionKind.UPDATE_MESSAGE:
        value = message.get("message")
        if not isinstance(value, str):
            raise ValueError("message required")
        return UpdateMessage(message=value)

    # PROCESS_DEALER_TURN carries whole hands and is never accepted off the wire.
    raise ValueError(f"Unsupported action {kind.value}")


def action_payload(action: Action) -> Dict[str, Any]:
    """Compact log/debug form of an action."""
    payload: Dict[str, Any] = {"action": action.kind.value}
    if isinstance(action, PlaceBet):
        payload.update(player_id=action.player_id, amount=action.amount)
    elif isinstance(action, (Hit, Stand)) and action.player_id:
        payload["player_id"] = action.player_id
    elif isinstance(action, AddPlayer):
        payload["name"] = action.name
    elif isinstance(action, RemovePlayer):
        payload["id"] = action.id
    elif isinstance(action, AddAIPlayer):
        payload["model"] = action.model.value
    elif isinstance(action, TogglePlayerType):
        payload.update(player_id=action.player_id, player_type=action.player_type.value)
        if action.model:
            payload["model"] = action.model.value
    elif isinstance(action, SetAIThinking):
        payload.update(player_id=action.player_id, thinking=action.action.value)
    elif isinstance(action, UpdateMessage):
        payload["message"] = action.message
    return payload
