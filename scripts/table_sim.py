#!/usr/bin/env python3
"""Play a run of rounds at an all-AI table, in-process.

Every seat is an AI player. Without ``--gateway-url`` the players have no model
to ask and every bet and move comes from the fallback rules, which makes this a
quick way to exercise the engine and the driver end to end.

Example:
    python scripts/table_sim.py --players 4 --rounds 50 --seed 7
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random

from advisor.client import GatewayClient
from advisor.decisions import AIAdvisor
from blackjack.actions import Action, ActionKind, AddAIPlayer, TogglePlayerType
from blackjack.models import AIModel, GameState, PlayerType, TableConfig
from blackjack.store import GameStore
from table.driver import GameDriver

LOGGER = logging.getLogger("table_sim")


def build_store(players: int, config: TableConfig, rng: random.Random) -> GameStore:
    store = GameStore(config, rng)
    models = list(AIModel)
    first = store.state.players[0]
    store.dispatch(TogglePlayerType(player_id=first.id, player_type=PlayerType.AI, model=rng.choice(models)))
    for _ in range(1, players):
        store.dispatch(AddAIPlayer(model=rng.choice(models)))
    return store


async def run(args: argparse.Namespace) -> GameState:
    config = TableConfig(
        starting_chips=args.starting_chips,
        dealer_delay_ms=0,
        ai_bet_delay_ms=0,
        ai_turn_delay_ms=0,
        ai_timeout_ms=args.ai_timeout_ms,
        auto_deal=True,
        auto_next_round=True,
        gateway_url=args.gateway_url,
    )
    rng = random.Random(args.seed)
    store = build_store(args.players, config, rng)
    client = GatewayClient(args.gateway_url) if args.gateway_url else None
    driver = GameDriver(store, AIAdvisor(client, timeout_s=config.ai_timeout_ms / 1000), config)

    finished = asyncio.Event()
    rounds_played = 0

    def on_transition(state: GameState, action: Action) -> None:
        nonlocal rounds_played
        if action.kind != ActionKind.PROCESS_DEALER_TURN:
            return
        rounds_played += 1
        LOGGER.info(
            "Round %s: dealer %s | %s",
            state.round,
            state.dealer.score,
            ", ".join(f"{p.name}={p.chips} ({p.result_message})" for p in state.players),
        )
        if rounds_played >= args.rounds:
            finished.set()

    store.subscribe(on_transition)
    driver.start()

    # The table stalls on its own once nobody has chips left to bet.
    finish_wait = asyncio.create_task(finished.wait())
    idle_wait = asyncio.create_task(driver.wait_idle())
    await asyncio.wait({finish_wait, idle_wait}, return_when=asyncio.FIRST_COMPLETED)
    for task in (finish_wait, idle_wait):
        task.cancel()
    await driver.stop()

    if rounds_played < args.rounds:
        LOGGER.info("Table stalled after %s rounds", rounds_played)
    return store.state


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate an all-AI blackjack table")
    parser.add_argument("--players", type=int, default=4)
    parser.add_argument("--rounds", type=int, default=20)
    parser.add_argument("--starting-chips", type=int, default=1_000)
    parser.add_argument("--ai-timeout-ms", type=int, default=10_000)
    parser.add_argument("--gateway-url", default=None)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    final = asyncio.run(run(args))
    for player in final.players:
        LOGGER.info("%s finished with %s chips", player.name, player.chips)


if __name__ == "__main__":
    main()
