from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .actions import (
    Action,
    ActionKind,
    AddAIPlayer,
    AddPlayer,
    PlaceBet,
    ProcessDealerTurn,
    RemovePlayer,
    SetAIThinking,
    TogglePlayerType,
    UpdateMessage,
)
from .cards import Card, calculate_score, create_deck, draw_card, has_busted, is_blackjack, new_id, reveal
from .dealer import dealer_play, settle_player
from .models import AIModel, AIThinking, Dealer, GamePhase, GameState, Player, PlayerType, TableConfig

# The reducer owns every rule about turn order, betting and payouts. It never
# raises for an action that does not fit the current phase; it hands back the
# same state (sometimes with an advisory message) instead.

BETTING_MESSAGE = "Place your bets to start the game"
GAME_OVER_MESSAGE = "Game over! Start a new round to play again."
AI_NAME_PREFIX = "AI "

Handler = Callable[[GameState, Any, TableConfig, random.Random], GameState]


def new_player(
    name: str,
    config: TableConfig,
    rng: random.Random,
    player_type: PlayerType = PlayerType.HUMAN,
    ai_model: Optional[AIModel] = None,
) -> Player:
    return Player(
        id=new_id(rng),
        name=name,
        chips=config.starting_chips,
        player_type=player_type,
        ai_model=ai_model if player_type == PlayerType.AI else None,
    )


def initial_state(config: Optional[TableConfig] = None, rng: Optional[random.Random] = None) -> GameState:
    config = config or TableConfig()
    rng = rng or random.Random()
    return GameState(
        players=(new_player("Player 1", config, rng),),
        message=BETTING_MESSAGE,
    )


def next_active_index(players: Sequence[Player], current: int) -> Optional[int]:
    """First player after ``current`` still to act. Never wraps around."""
    for idx in range(current + 1, len(players)):
        if not players[idx].is_done:
            return idx
    return None


def _with_active(players: Sequence[Player], active_index: Optional[int]) -> Tuple[Player, ...]:
    return tuple(
        player if player.is_active == (idx == active_index) else replace(player, is_active=idx == active_index)
        for idx, player in enumerate(players)
    )


def _replace_at(players: Sequence[Player], index: int, player: Player) -> Tuple[Player, ...]:
    updated = list(players)
    updated[index] = player
    return tuple(updated)


# Betting ---------------------------------------------------------------


def _place_bet(state: GameState, action: PlaceBet, config: TableConfig, rng: random.Random) -> GameState:
    if state.game_phase != GamePhase.BETTING:
        return state

    player = state.find_player(action.player_id)
    if player is None:
        return replace(state, message="Invalid bet: unknown player")
    if action.amount <= 0:
        return replace(state, message="Invalid bet: amount must be positive")

    # A second bet in the same phase replaces the first one.
    available = player.chips + player.bet
    if action.amount > available:
        return replace(state, message="Invalid bet: Not enough chips")

    updated = tuple(
        replace(p, bet=action.amount, chips=available - action.amount) if p.id == player.id else p
        for p in state.players
    )
    if all(p.bet > 0 for p in updated):
        message = "All bets placed! Deal the cards to begin."
    else:
        message = f"{player.name} placed a bet of ${action.amount}. Waiting for other players..."
    return replace(state, players=updated, message=message)


def _deal(state: GameState, action: Any, config: TableConfig, rng: random.Random) -> GameState:
    if state.game_phase != GamePhase.BETTING:
        return replace(state, message="Cards can only be dealt during betting")
    if not all(player.bet > 0 for player in state.players):
        return replace(state, message="All players must place a bet before dealing")

    deck = create_deck(rng)
    players: List[Player] = []
    for player in state.players:
        first, deck = draw_card(deck, True, rng)
        second, deck = draw_card(deck, True, rng)
        hand = (first, second)
        blackjack = is_blackjack(hand)
        players.append(
            replace(
                player,
                hand=hand,
                score=calculate_score(hand),
                has_busted=False,
                has_blackjack=blackjack,
                has_stood=blackjack,
                is_active=False,
                result_message=None,
            )
        )

    up_card, deck = draw_card(deck, True, rng)
    hole_card, deck = draw_card(deck, False, rng)
    dealer_hand = (up_card, hole_card)
    # Peek at the hole card; the same check runs again once the dealer plays.
    dealer_blackjack = is_blackjack(reveal(dealer_hand))
    dealer = Dealer(hand=dealer_hand, score=calculate_score(dealer_hand), has_blackjack=dealer_blackjack)

    first_active = next_active_index(players, -1)
    if dealer_blackjack:
        phase = GamePhase.DEALER_TURN
        message = "Dealer has Blackjack!"
        active: Optional[int] = None
    elif first_active is None:
        phase = GamePhase.DEALER_TURN
        message = "All players have Blackjack! Checking dealer..."
        active = None
    else:
        phase = GamePhase.PLAYER_TURNS
        message = f"{players[first_active].name}'s turn"
        active = first_active

    return replace(
        state,
        deck=deck,
        players=_with_active(players, active),
        dealer=dealer,
        current_player_index=first_active if first_active is not None else 0,
        game_phase=phase,
        is_player_turn=phase == GamePhase.PLAYER_TURNS,
        message=message,
        round=state.round + 1,
    )


# Player turns ------------------------------------------------------------


def _acting_player(state: GameState, player_id: Optional[str]) -> Optional[Player]:
    if state.game_phase != GamePhase.PLAYER_TURNS or not state.is_player_turn:
        return None
    player = state.current_player
    if player is None or player.is_done:
        return None
    if player_id is not None and player.id != player_id:
        return None
    return player


def _finish_turn(state: GameState, players: Tuple[Player, ...], deck, lead: str) -> GameState:
    next_index = next_active_index(players, state.current_player_index)
    if next_index is None:
        return replace(
            state,
            deck=deck,
            players=_with_active(players, None),
            game_phase=GamePhase.DEALER_TURN,
            is_player_turn=False,
            message=f"{lead} Dealer's turn.",
        )
    return replace(
        state,
        deck=deck,
        players=_with_active(players, next_index),
        current_player_index=next_index,
        message=f"{lead} {players[next_index].name}'s turn",
    )


def _hit(state: GameState, action: Any, config: TableConfig, rng: random.Random) -> GameState:
    player = _acting_player(state, action.player_id)
    if player is None:
        return state

    card, deck = draw_card(state.deck, True, rng)
    hand = player.hand + (card,)
    busted = has_busted(hand)
    updated = replace(
        player,
        hand=hand,
        score=calculate_score(hand),
        has_busted=busted,
        has_stood=busted or player.has_stood,
    )
    players = _replace_at(state.players, state.current_player_index, updated)

    if busted:
        return _finish_turn(state, players, deck, f"{player.name} busted!")
    return replace(state, deck=deck, players=players, message=f"{player.name} hits and gets {card.label}")


def _stand(state: GameState, action: Any, config: TableConfig, rng: random.Random) -> GameState:
    player = _acting_player(state, action.player_id)
    if player is None:
        return state

    updated = replace(player, has_stood=True, is_active=False)
    players = _replace_at(state.players, state.current_player_index, updated)
    return _finish_turn(state, players, state.deck, f"{player.name} stands.")


# Dealer turn and round lifecycle -------------------------------------------


def resolve_dealer_turn(
    state: GameState,
    rng: Optional[random.Random] = None,
    stands_on: Optional[int] = None,
) -> ProcessDealerTurn:
    """Play the dealer's hand and settle every player against it."""
    kwargs = {} if stands_on is None else {"stands_on": stands_on}
    dealer, deck = dealer_play(state.dealer, state.deck, rng, **kwargs)
    players = tuple(settle_player(player, dealer) for player in state.players)
    return ProcessDealerTurn(players=players, dealer=dealer, deck=deck)


def _process_dealer_turn(
    state: GameState, action: ProcessDealerTurn, config: TableConfig, rng: random.Random
) -> GameState:
    if state.game_phase != GamePhase.DEALER_TURN:
        return state
    return replace(
        state,
        players=tuple(action.players),
        dealer=action.dealer,
        deck=tuple(action.deck),
        game_phase=GamePhase.GAME_OVER,
        is_player_turn=False,
        message=GAME_OVER_MESSAGE,
    )


def _start_betting_phase(state: GameState, action: Any, config: TableConfig, rng: random.Random) -> GameState:
    if state.game_phase != GamePhase.GAME_OVER:
        return state
    players = tuple(
        replace(
            player,
            bet=0,
            hand=(),
            score=0,
            has_busted=False,
            has_blackjack=False,
            has_stood=False,
            is_active=False,
            result_message=None,
        )
        for player in state.players
    )
    return replace(
        state,
        players=players,
        dealer=Dealer(),
        game_phase=GamePhase.BETTING,
        current_player_index=0,
        is_player_turn=True,
        message=BETTING_MESSAGE,
    )


def _reset(state: GameState, action: Any, config: TableConfig, rng: random.Random) -> GameState:
    players = tuple(
        Player(
            id=player.id,
            name=player.name,
            chips=config.starting_chips,
            player_type=player.player_type,
            ai_model=player.ai_model,
        )
        for player in state.players
    )
    return GameState(players=players, message=BETTING_MESSAGE)


# Roster ----------------------------------------------------------------


def _roster_locked(state: GameState) -> bool:
    return state.game_phase != GamePhase.BETTING


def _add_player(state: GameState, action: AddPlayer, config: TableConfig, rng: random.Random) -> GameState:
    if _roster_locked(state):
        return replace(state, message="Players can only join during betting")
    if len(state.players) >= config.max_players:
        return replace(state, message=f"Maximum {config.max_players} players allowed")
    name = action.name.strip()
    if not name:
        return replace(state, message="Player name required")
    player = new_player(name, config, rng)
    return replace(state, players=state.players + (player,), message=f"{name} joined the game")


def _add_ai_player(state: GameState, action: AddAIPlayer, config: TableConfig, rng: random.Random) -> GameState:
    if _roster_locked(state):
        return replace(state, message="Players can only join during betting")
    if len(state.players) >= config.max_players:
        return replace(state, message=f"Maximum {config.max_players} players allowed")
    ai_count = sum(1 for player in state.players if player.is_ai)
    name = f"AI Player {ai_count + 1}"
    player = new_player(name, config, rng, PlayerType.AI, action.model)
    return replace(
        state,
        players=state.players + (player,),
        message=f"{name} (AI - {action.model.value}) joined the game",
    )


def _remove_player(state: GameState, action: RemovePlayer, config: TableConfig, rng: random.Random) -> GameState:
    if _roster_locked(state):
        return replace(state, message="Players can only leave during betting")
    if len(state.players) <= 1 or state.find_player(action.id) is None:
        return state
    players = tuple(player for player in state.players if player.id != action.id)
    index = state.current_player_index
    if index >= len(players):
        index = len(players) - 1
    return replace(state, players=players, current_player_index=index, message="Player removed from the game")


def _toggle_player_type(
    state: GameState, action: TogglePlayerType, config: TableConfig, rng: random.Random
) -> GameState:
    if _roster_locked(state):
        return replace(state, message="Player type can only change during betting")
    player = state.find_player(action.player_id)
    if player is None:
        return state

    base_name = player.name[len(AI_NAME_PREFIX):] if player.name.startswith(AI_NAME_PREFIX) else player.name
    base_name = base_name.strip() or player.name
    if action.player_type == PlayerType.AI:
        updated = replace(
            player,
            player_type=PlayerType.AI,
            ai_model=action.model or player.ai_model or config.default_ai_model,
            name=f"{AI_NAME_PREFIX}{base_name}",
        )
    else:
        updated = replace(player, player_type=PlayerType.HUMAN, ai_model=None, name=base_name)

    players = tuple(updated if p.id == player.id else p for p in state.players)
    return replace(state, players=players, message=f"Player type changed for {updated.name}")


# Observability -----------------------------------------------------------


def _set_ai_thinking(state: GameState, action: SetAIThinking, config: TableConfig, rng: random.Random) -> GameState:
    player = state.find_player(action.player_id)
    if player is None:
        return state
    return replace(
        state,
        ai_is_thinking=AIThinking(player_id=player.id, action=action.action),
        message=f"{player.name} is thinking...",
    )


def _clear_ai_thinking(state: GameState, action: Any, config: TableConfig, rng: random.Random) -> GameState:
    if state.ai_is_thinking is None:
        return state
    return replace(state, ai_is_thinking=None)


def _update_message(state: GameState, action: UpdateMessage, config: TableConfig, rng: random.Random) -> GameState:
    return replace(state, message=action.message)


_HANDLERS: Dict[ActionKind, Handler] = {
    ActionKind.PLACE_BET: _place_bet,
    ActionKind.DEAL: _deal,
    ActionKind.HIT: _hit,
    ActionKind.STAND: _stand,
    ActionKind.RESET: _reset,
    ActionKind.ADD_PLAYER: _add_player,
    ActionKind.REMOVE_PLAYER: _remove_player,
    ActionKind.ADD_AI_PLAYER: _add_ai_player,
    ActionKind.TOGGLE_PLAYER_TYPE: _toggle_player_type,
    ActionKind.START_BETTING_PHASE: _start_betting_phase,
    ActionKind.PROCESS_DEALER_TURN: _process_dealer_turn,
    ActionKind.SET_AI_THINKING: _set_ai_thinking,
    ActionKind.CLEAR_AI_THINKING: _clear_ai_thinking,
    ActionKind.UPDATE_MESSAGE: _update_message,
}


def reduce(
    state: GameState,
    action: Action,
    rng: Optional[random.Random] = None,
    config: Optional[TableConfig] = None,
) -> GameState:
    """Apply one action and return the next state. ``state`` is never modified."""
    kind = getattr(action, "kind", None)
    handler = _HANDLERS.get(kind) if isinstance(kind, ActionKind) else None
    if handler is None:
        raise ValueError(f"Unsupported action {action!r}")
    return handler(state, action, config or TableConfig(), rng or random.Random())


# Snapshot helpers --------------------------------------------------------


def card_payload(card: Card) -> Dict[str, object]:
    if not card.face_up:
        return {"id": card.id, "face_up": False}
    return {
        "id": card.id,
        "face_up": True,
        "suit": card.suit.value,
        "value": card.value.value,
        "label": card.label,
    }


def player_payload(player: Player) -> Dict[str, object]:
    return {
        "id": player.id,
        "name": player.name,
        "hand": [card_payload(card) for card in player.hand],
        "score": player.score,
        "has_busted": player.has_busted,
        "has_blackjack": player.has_blackjack,
        "has_stood": player.has_stood,
        "chips": player.chips,
        "bet": player.bet,
        "is_active": player.is_active,
        "player_type": player.player_type.value,
        "ai_model": player.ai_model.value if player.ai_model else None,
        "result_message": player.result_message,
    }


def snapshot_payload(state: GameState) -> Dict[str, object]:
    dealer = state.dealer
    # Dealer blackjack stays private until the hole card is turned over.
    hole_hidden = any(not card.face_up for card in dealer.hand)
    return {
        "round": state.round,
        "phase": state.game_phase.value,
        "current_player_index": state.current_player_index,
        "is_player_turn": state.is_player_turn,
        "message": state.message,
        "deck_remaining": len(state.deck),
        "players": [player_payload(player) for player in state.players],
        "dealer": {
            "hand": [card_payload(card) for card in dealer.hand],
            "score": dealer.score,
            "has_busted": dealer.has_busted,
            "has_blackjack": dealer.has_blackjack and not hole_hidden,
        },
        "ai_is_thinking": (
            {"player_id": state.ai_is_thinking.player_id, "action": state.ai_is_thinking.action.value}
            if state.ai_is_thinking
            else None
        ),
    }
