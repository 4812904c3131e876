from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Hashable, List, Optional, Tuple

from advisor.decisions import AIAdvisor
from blackjack.actions import (
    Action,
    ActionKind,
    ClearAIThinking,
    Deal,
    Hit,
    PlaceBet,
    SetAIThinking,
    Stand,
    StartBettingPhase,
    UpdateMessage,
)
from blackjack.game import resolve_dealer_turn
from blackjack.models import GamePhase, GameState, Player, TableConfig, ThinkingAction
from blackjack.store import GameStore

LOGGER = logging.getLogger("blackjack_table")

# GameDriver owns everything that happens on a timer or waits on the network:
# the dealer's turn and the AI players. It only ever changes the game through
# store.dispatch, the same as a human client.


@dataclass
class PendingAI:
    # key identifies the decision point; if the state moves on, the key no
    # longer matches and the request is cancelled or its answer dropped.
    key: Tuple[Hashable, ...]
    player_id: str
    task: asyncio.Task


def _ai_key(state: GameState) -> Optional[Tuple[Hashable, ...]]:
    # key[2] is always the id of the player who has to decide.
    if state.game_phase == GamePhase.BETTING:
        for player in state.players:
            if player.is_ai and player.bet == 0 and player.chips > 0:
                return ("bet", state.round, player.id)
        return None

    if state.game_phase == GamePhase.PLAYER_TURNS and state.is_player_turn:
        player = state.current_player
        if player and player.is_ai and player.is_active and not player.is_done:
            return ("play", state.round, player.id, state.current_player_index, len(player.hand))
    return None


class GameDriver:
    def __init__(self, store: GameStore, advisor: AIAdvisor, config: Optional[TableConfig] = None) -> None:
        self.store = store
        self.advisor = advisor
        self.config = config or store.config
        self.dealer_task: Optional[asyncio.Task] = None
        self.flow_task: Optional[asyncio.Task] = None
        self.pending_ai: Optional[PendingAI] = None
        self.running = False

    # Lifecycle -------------------------------------------------------

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self.store.subscribe(self._on_transition)
        self._reconcile()

    async def stop(self) -> None:
        self.running = False
        self.store.unsubscribe(self._on_transition)
        tasks = self._tasks()
        self._cancel_dealer()
        self._cancel_flow()
        self._cancel_ai()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait until no timer or AI request is outstanding."""
        while True:
            tasks = self._tasks()
            if not tasks:
                await asyncio.sleep(0)
                if not self._tasks():
                    return
                continue
            await asyncio.gather(*tasks, return_exceptions=True)

    def dispatch(self, action: Action) -> GameState:
        return self.store.dispatch(action)

    def _tasks(self) -> List[asyncio.Task]:
        tasks = [self.dealer_task, self.flow_task, self.pending_ai.task if self.pending_ai else None]
        return [task for task in tasks if task is not None and not task.done()]

    # Scheduling ------------------------------------------------------

    def _on_transition(self, state: GameState, action: Action) -> None:
        self._reconcile()

    def _reconcile(self) -> None:
        if not self.running:
            return
        state = self.store.state

        if state.game_phase == GamePhase.DEALER_TURN:
            if self.dealer_task is None or self.dealer_task.done():
                self.dealer_task = self._spawn(self._run_dealer_turn(state.round))
        else:
            self._cancel_dealer()

        key = _ai_key(state)
        if self.pending_ai and self.pending_ai.key != key:
            LOGGER.info("Context moved on; cancelling AI request for %s", self.pending_ai.player_id)
            self._cancel_ai()
        if key is not None and self.pending_ai is None:
            player_id = str(key[2])
            if key[0] == "bet":
                task = self._spawn(self._run_ai_bet(key, player_id))
            else:
                task = self._spawn(self._run_ai_turn(key, player_id))
            self.pending_ai = PendingAI(key=key, player_id=player_id, task=task)

        if self.flow_task is None or self.flow_task.done():
            if self.config.auto_deal and self._ready_to_deal(state):
                self.flow_task = self._spawn(self._run_flow(Deal(), GamePhase.BETTING, 0))
            elif self.config.auto_next_round and state.game_phase == GamePhase.GAME_OVER:
                self.flow_task = self._spawn(
                    self._run_flow(StartBettingPhase(), GamePhase.GAME_OVER, self.config.dealer_delay_ms)
                )

    def _ready_to_deal(self, state: GameState) -> bool:
        return (
            state.game_phase == GamePhase.BETTING
            and self.pending_ai is None
            and all(player.bet > 0 for player in state.players)
        )

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        task.add_done_callback(self._log_task_failure)
        return task

    def _log_task_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Table task failed", exc_info=exc)

    def _cancel_dealer(self) -> None:
        if self.dealer_task and not self.dealer_task.done():
            self.dealer_task.cancel()
        self.dealer_task = None

    def _cancel_flow(self) -> None:
        if self.flow_task and not self.flow_task.done():
            self.flow_task.cancel()
        self.flow_task = None

    def _cancel_ai(self) -> None:
        if self.pending_ai and not self.pending_ai.task.done():
            self.pending_ai.task.cancel()
        self.pending_ai = None

    # Timed work ------------------------------------------------------

    async def _run_dealer_turn(self, round_no: int) -> None:
        await asyncio.sleep(self.config.dealer_delay_ms / 1000)
        state = self.store.state
        if state.game_phase != GamePhase.DEALER_TURN or state.round != round_no:
            return
        result = resolve_dealer_turn(state, self.store.rng, self.config.dealer_stands_on)
        LOGGER.info(
            "Dealer finishes round %s on %s%s",
            round_no,
            result.dealer.score,
            " (bust)" if result.dealer.has_busted else "",
        )
        for player in result.players:
            LOGGER.info("%s: %s (chips=%s)", player.name, player.result_message, player.chips)
        self.dealer_task = None
        self.store.dispatch(result)

    async def _run_flow(self, action: Action, phase: GamePhase, delay_ms: int) -> None:
        if delay_ms:
            await asyncio.sleep(delay_ms / 1000)
        if self.store.state.game_phase != phase:
            return
        self.flow_task = None
        self.store.dispatch(action)

    async def _run_ai_bet(self, key: Tuple[Hashable, ...], player_id: str) -> None:
        player = self.store.state.find_player(player_id)
        assert player is not None
        self.store.dispatch(SetAIThinking(player_id=player_id, action=ThinkingAction.BETTING))
        try:
            await asyncio.sleep(self.config.ai_bet_delay_ms / 1000)
            decision = await self.advisor.decide_bet(player.chips, player.ai_model or self.config.default_ai_model)
        finally:
            self._clear_thinking(player_id)

        if not self._still_current(key):
            LOGGER.info("Dropping stale bet for %s", player.name)
            return
        self.pending_ai = None
        self.store.dispatch(PlaceBet(player_id=player_id, amount=decision.amount))
        if decision.used_fallback:
            self.store.dispatch(UpdateMessage(message=f"{player.name} used a fallback bet."))

    async def _run_ai_turn(self, key: Tuple[Hashable, ...], player_id: str) -> None:
        state = self.store.state
        player = state.find_player(player_id)
        assert player is not None
        self.store.dispatch(SetAIThinking(player_id=player_id, action=ThinkingAction.PLAYING))
        try:
            await asyncio.sleep(self.config.ai_turn_delay_ms / 1000)
            decision = await self.advisor.decide_hit_or_stand(
                player.hand,
                player.score,
                state.dealer.up_card,
                _others(state, player_id),
                player.ai_model or self.config.default_ai_model,
            )
        finally:
            self._clear_thinking(player_id)

        if not self._still_current(key):
            LOGGER.info("Dropping stale %s for %s", decision.action.value, player.name)
            return
        self.pending_ai = None
        action = Hit(player_id=player_id) if decision.action == ActionKind.HIT else Stand(player_id=player_id)
        self.store.dispatch(action)
        if decision.used_fallback:
            self.store.dispatch(
                UpdateMessage(message=f"{player.name} used a fallback move ({decision.action.value}).")
            )

    def _still_current(self, key: Tuple[Hashable, ...]) -> bool:
        return (
            self.running
            and self.pending_ai is not None
            and self.pending_ai.key == key
            and _ai_key(self.store.state) == key
        )

    def _clear_thinking(self, player_id: str) -> None:
        thinking = self.store.state.ai_is_thinking
        if thinking is not None and thinking.player_id == player_id:
            self.store.dispatch(ClearAIThinking())


def _others(state: GameState, player_id: str) -> List[Player]:
    return [player for player in state.players if player.id != player_id]
