"""AI players: prompt building, completion gateway client and decision parsing."""

from .client import CompletionError, CompletionRequest, CompletionResponse, GatewayClient, provider_for_model
from .decisions import AIAdvisor, BetDecision, PlayDecision, fallback_bet, fallback_decision

__all__ = [
    "CompletionError",
    "CompletionRequest",
    "CompletionResponse",
    "GatewayClient",
    "provider_for_model",
    "AIAdvisor",
    "BetDecision",
    "PlayDecision",
    "fallback_bet",
    "fallback_decision",
]
