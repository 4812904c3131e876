from __future__ import annotations

import logging
import random
from typing import Callable, Dict, List, Optional

from .actions import ACTION_TYPES, Action, action_payload
from .game import initial_state, reduce, snapshot_payload
from .models import GameState, TableConfig

LOGGER = logging.getLogger("blackjack_engine")

Listener = Callable[[GameState, Action], None]


class GameStore:
    """Single owner of the authoritative ``GameState``.

    Actions are applied one at a time, in the order ``dispatch`` is called.
    Listeners run synchronously after each transition that produced a new state.
    """

    def __init__(
        self,
        config: Optional[TableConfig] = None,
        rng: Optional[random.Random] = None,
        state: Optional[GameState] = None,
    ) -> None:
        self.config = config or TableConfig()
        self.rng = rng or random.Random()
        self._state = state if state is not None else initial_state(self.config, self.rng)
        self._listeners: List[Listener] = []

    @property
    def state(self) -> GameState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def dispatch(self, action: Action) -> GameState:
        if not isinstance(action, ACTION_TYPES):
            raise TypeError(f"Not a game action: {action!r}")

        previous = self._state
        self._state = reduce(previous, action, self.rng, self.config)

        if self._state is previous:
            LOGGER.debug("Ignored action %s in phase %s", action_payload(action), previous.game_phase.value)
            return self._state

        LOGGER.debug("Applied action %s", action_payload(action))
        if self._state.game_phase != previous.game_phase:
            LOGGER.info(
                "Round %s: %s -> %s (%s)",
                self._state.round,
                previous.game_phase.value,
                self._state.game_phase.value,
                self._state.message,
            )

        for listener in list(self._listeners):
            listener(self._state, action)
        return self._state

    def snapshot(self) -> Dict[str, object]:
        return snapshot_payload(self._state)
