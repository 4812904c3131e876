import pytest

from blackjack import game
from blackjack.actions import (
    AddAIPlayer,
    Hit,
    PlaceBet,
    SetAIThinking,
    TogglePlayerType,
    action_payload,
    parse_action,
)
from blackjack.models import AIModel, PlayerType, ThinkingAction

from .helpers import betting_state


def test_parse_place_bet():
    action = parse_action({"action": "PLACE_BET", "player_id": "p1", "amount": 25})
    assert action == PlaceBet(player_id="p1", amount=25)


@pytest.mark.parametrize("amount", ["25", 2.5, True, None])
def test_parse_place_bet_rejects_non_integer_amount(amount):
    with pytest.raises(ValueError, match="amount"):
        parse_action({"action": "PLACE_BET", "player_id": "p1", "amount": amount})


def test_parse_requires_player_id():
    with pytest.raises(ValueError, match="player_id required"):
        parse_action({"action": "PLACE_BET", "amount": 10})


def test_parse_unknown_action():
    with pytest.raises(ValueError, match="Unsupported action"):
        parse_action({"action": "SPLIT"})
    with pytest.raises(ValueError, match="Unsupported action"):
        parse_action({})


def test_dealer_turn_is_never_parsed():
    with pytest.raises(ValueError, match="Unsupported action PROCESS_DEALER_TURN"):
        parse_action({"action": "PROCESS_DEALER_TURN"})


def test_parse_models_and_types():
    assert parse_action({"action": "ADD_AI_PLAYER", "model": "gemini-1.5-flash-latest"}) == AddAIPlayer(
        model=AIModel.GEMINI_1_5_FLASH
    )
    with pytest.raises(ValueError, match="Unknown model"):
        parse_action({"action": "ADD_AI_PLAYER", "model": "gpt-2"})

    toggle = parse_action({"action": "TOGGLE_PLAYER_TYPE", "player_id": "p1", "player_type": "AI"})
    assert toggle == TogglePlayerType(player_id="p1", player_type=PlayerType.AI)
    with pytest.raises(ValueError, match="player_type"):
        parse_action({"action": "TOGGLE_PLAYER_TYPE", "player_id": "p1", "player_type": "ROBOT"})


def test_parse_optional_player_id_on_hit():
    assert parse_action({"action": "HIT"}) == Hit()
    assert parse_action({"action": "HIT", "player_id": "p2"}) == Hit(player_id="p2")
    with pytest.raises(ValueError):
        parse_action({"action": "HIT", "player_id": 7})


def test_parse_thinking():
    action = parse_action({"action": "SET_AI_THINKING", "player_id": "p1", "thinking": "PLAYING"})
    assert action == SetAIThinking(player_id="p1", action=ThinkingAction.PLAYING)


def test_action_payload_is_compact():
    assert action_payload(PlaceBet("p1", 40)) == {"action": "PLACE_BET", "player_id": "p1", "amount": 40}
    assert action_payload(Hit()) == {"action": "HIT"}


def test_reduce_rejects_unknown_objects():
    state = betting_state("A")
    with pytest.raises(ValueError, match="Unsupported action"):
        game.reduce(state, object())  # type: ignore[arg-type]
