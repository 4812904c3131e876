import argparse
import asyncio
import logging
import random

from blackjack.models import MAX_SEATS, AIModel, TableConfig
from .server import TableServer


def main() -> None:
    # CLI doubles as documentation for the table toggles.
    parser = argparse.ArgumentParser(description="Blackjack table host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--starting-chips", type=int, default=1_000)
    parser.add_argument("--max-players", type=int, default=MAX_SEATS, choices=range(1, MAX_SEATS + 1))
    parser.add_argument(
        "--dealer-delay-ms",
        type=int,
        default=1_500,
        help="Pause before the dealer plays out the hand (milliseconds)",
    )
    parser.add_argument("--ai-bet-delay-ms", type=int, default=800)
    parser.add_argument("--ai-turn-delay-ms", type=int, default=1_200)
    parser.add_argument(
        "--ai-timeout-ms",
        type=int,
        default=10_000,
        help="Give up on a model reply after this long and use the fallback rule",
    )
    parser.add_argument(
        "--gateway-url",
        default=None,
        help="Websocket URL of the completion gateway (AI players use fallback rules when unset)",
    )
    parser.add_argument(
        "--default-model",
        choices=[model.value for model in AIModel],
        default=AIModel.LLAMA3_8B.value,
    )
    parser.add_argument("--auto-deal", action="store_true", help="Deal as soon as every player has bet")
    parser.add_argument("--auto-next-round", action="store_true", help="Open betting again after each round")
    parser.add_argument("--seed", type=int, default=None, help="Seed the shuffle (testing only)")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = TableConfig(
        max_players=args.max_players,
        starting_chips=args.starting_chips,
        dealer_delay_ms=args.dealer_delay_ms,
        ai_bet_delay_ms=args.ai_bet_delay_ms,
        ai_turn_delay_ms=args.ai_turn_delay_ms,
        ai_timeout_ms=args.ai_timeout_ms,
        default_ai_model=AIModel(args.default_model),
        auto_deal=args.auto_deal,
        auto_next_round=args.auto_next_round,
        gateway_url=args.gateway_url,
    )

    server = TableServer(config, rng=random.Random(args.seed))
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
