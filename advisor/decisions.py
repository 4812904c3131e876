from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from http import HTTPStatus
from typing import Optional, Sequence

from blackjack.actions import ActionKind
from blackjack.cards import Card
from blackjack.models import DEFAULT_AI_MODEL, AIModel, Player

from .client import CompletionClient, CompletionError, CompletionRequest, provider_for_model
from .prompts import MAX_AI_BET, MIN_AI_BET, bet_prompt, decision_prompt

LOGGER = logging.getLogger("blackjack_advisor")

FALLBACK_BET_CAP = 100
FALLBACK_STAND_ON = 17
DEFAULT_TIMEOUT_S = 10.0

_NON_DIGITS = re.compile(r"[^0-9]")


@dataclass(frozen=True)
class BetDecision:
    amount: int
    used_fallback: bool = False


@dataclass(frozen=True)
class PlayDecision:
    action: ActionKind
    used_fallback: bool = False


def fallback_bet(chips: int) -> int:
    # 5% of the stack, kept within [10, 100] and never more than the stack.
    amount = max(MIN_AI_BET, min(chips // 20, FALLBACK_BET_CAP))
    return min(amount, chips)


def fallback_decision(score: int) -> ActionKind:
    return ActionKind.HIT if score < FALLBACK_STAND_ON else ActionKind.STAND


def parse_bet(text: str, chips: int) -> Optional[int]:
    digits = _NON_DIGITS.sub("", text.strip())
    if not digits:
        return None
    amount = int(digits)
    if amount <= 0:
        return None
    return min(max(MIN_AI_BET, amount), chips, MAX_AI_BET)


def parse_decision(text: str) -> Optional[ActionKind]:
    upper = text.upper()
    if "HIT" in upper:
        return ActionKind.HIT
    if "STAND" in upper:
        return ActionKind.STAND
    return None


class AIAdvisor:
    """Turns model replies into bets and hit/stand calls.

    Nothing raised by the completion client escapes: timeouts, gateway errors
    and unreadable replies all resolve to the fixed fallback rules.
    """

    def __init__(self, client: Optional[CompletionClient], timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        self.client = client
        self.timeout_s = timeout_s

    async def decide_bet(self, chips: int, model: Optional[AIModel] = None) -> BetDecision:
        model = model or DEFAULT_AI_MODEL
        text = await self._complete(bet_prompt(chips), model, "bet")
        amount = parse_bet(text, chips) if text is not None else None
        if amount is None:
            if text is not None:
                LOGGER.warning("Model %s gave an unusable bet %r; using fallback", model.value, text[:100])
            return BetDecision(amount=fallback_bet(chips), used_fallback=True)
        LOGGER.info("Model %s bets %s (chips=%s)", model.value, amount, chips)
        return BetDecision(amount=amount)

    async def decide_hit_or_stand(
        self,
        hand: Sequence[Card],
        score: int,
        dealer_up_card: Optional[Card],
        other_players: Sequence[Player],
        model: Optional[AIModel] = None,
    ) -> PlayDecision:
        model = model or DEFAULT_AI_MODEL
        prompt = decision_prompt(hand, score, dealer_up_card, other_players)
        text = await self._complete(prompt, model, "decision")
        action = parse_decision(text) if text is not None else None
        if action is None:
            if text is not None:
                LOGGER.warning("Model %s gave an ambiguous decision %r; using fallback", model.value, text[:100])
            return PlayDecision(action=fallback_decision(score), used_fallback=True)
        LOGGER.info("Model %s decides %s on %s", model.value, action.value, score)
        return PlayDecision(action=action)

    async def _complete(self, prompt: str, model: AIModel, purpose: str) -> Optional[str]:
        request = CompletionRequest(prompt=prompt, provider=provider_for_model(model), model=model.value)
        try:
            if self.client is None:
                raise CompletionError(HTTPStatus.SERVICE_UNAVAILABLE, "No completion gateway configured")
            response = await asyncio.wait_for(self.client.complete(request), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            LOGGER.warning("%s request to %s timed out after %.1fs; using fallback", purpose, model.value, self.timeout_s)
            return None
        except CompletionError as exc:
            LOGGER.warning("%s request to %s failed (%s): %s; using fallback", purpose, model.value, exc.status, exc.msg)
            return None
        except Exception as exc:
            LOGGER.warning("%s request to %s failed: %s; using fallback", purpose, model.value, exc)
            return None
        return response.text
