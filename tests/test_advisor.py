import asyncio
import json

import pytest

from advisor import AIAdvisor, CompletionError, CompletionResponse, GatewayClient, provider_for_model
from advisor.decisions import fallback_bet, fallback_decision, parse_bet, parse_decision
from advisor.prompts import bet_prompt, decision_prompt
from blackjack.actions import ActionKind
from blackjack.models import AIModel

from .helpers import card, cards, make_player


class FakeClient:
    def __init__(self, reply=None, error=None, delay=0.0) -> None:
        self.reply = reply
        self.error = error
        self.delay = delay
        self.requests = []

    async def complete(self, request):
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return CompletionResponse(text=self.reply)


def test_provider_follows_model_family():
    assert provider_for_model(AIModel.GEMINI_1_5_FLASH) == "google"
    assert provider_for_model(AIModel.LLAMA3_70B) == "groq"
    assert provider_for_model(AIModel.LLAMA3_8B) == "groq"


@pytest.mark.parametrize(
    "chips, expected",
    [(1_000, 50), (5_000, 100), (100, 10), (5, 5), (250, 12)],
)
def test_fallback_bet(chips, expected):
    assert fallback_bet(chips) == expected


def test_fallback_decision_hits_below_17():
    assert fallback_decision(16) == ActionKind.HIT
    assert fallback_decision(17) == ActionKind.STAND


@pytest.mark.parametrize(
    "text, chips, expected",
    [
        ("75", 1_000, 75),
        (" $120 ", 1_000, 120),
        ("5", 1_000, 10),
        ("900", 1_000, 500),
        ("300", 200, 200),
        ("no idea", 1_000, None),
        ("0", 1_000, None),
    ],
)
def test_parse_bet(text, chips, expected):
    assert parse_bet(text, chips) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("I would HIT here.", ActionKind.HIT),
        ("stand", ActionKind.STAND),
        ("Don't hit, STAND", ActionKind.HIT),
        ("fold", None),
    ],
)
def test_parse_decision(text, expected):
    assert parse_decision(text) == expected


def test_bet_prompt_caps_range_at_stack():
    prompt = bet_prompt(120)
    assert "have 120 chips" in prompt
    assert "between 10 and 120" in prompt
    assert "between 10 and 500" in bet_prompt(2_000)


def test_decision_prompt_lists_table():
    other = make_player("Bob", hand=("9", "7"))
    hidden = make_player("Eve")
    prompt = decision_prompt(cards("10", "6"), 16, card("K"), [other, hidden])

    assert "Your hand: 10♠, 6♠ (score: 16)" in prompt
    assert "Dealer shows: K♠." in prompt
    assert "- Bob: 9♠, 7♠ (visible score: 16)" in prompt
    assert "Eve" not in prompt
    assert prompt.rstrip().endswith('"HIT" or "STAND".')
    assert "Dealer has no cards yet." in decision_prompt(cards("10"), 10, None, [])


def test_decide_bet_uses_model_reply():
    client = FakeClient(reply="80")
    advisor = AIAdvisor(client)
    decision = asyncio.run(advisor.decide_bet(1_000, AIModel.GEMINI_1_5_FLASH))

    assert decision.amount == 80
    assert not decision.used_fallback
    request = client.requests[0]
    assert request.provider == "google"
    assert request.model == "gemini-1.5-flash-latest"


def test_decide_bet_falls_back_on_gateway_error():
    advisor = AIAdvisor(FakeClient(error=CompletionError(429, "rate limited")))
    decision = asyncio.run(advisor.decide_bet(1_000))
    assert decision.amount == 50
    assert decision.used_fallback


def test_decide_bet_falls_back_on_unexpected_error():
    advisor = AIAdvisor(FakeClient(error=ConnectionRefusedError("down")))
    assert asyncio.run(advisor.decide_bet(400)).amount == 20


def test_decision_times_out_to_fallback():
    client = FakeClient(reply="STAND", delay=1.0)
    advisor = AIAdvisor(client, timeout_s=0.01)
    decision = asyncio.run(advisor.decide_hit_or_stand(cards("10", "2"), 12, card("7"), []))
    assert decision.action == ActionKind.HIT
    assert decision.used_fallback


def test_decision_fallback_on_ambiguous_reply():
    advisor = AIAdvisor(FakeClient(reply="It depends."))
    decision = asyncio.run(advisor.decide_hit_or_stand(cards("10", "8"), 18, card("7"), []))
    assert decision.action == ActionKind.STAND
    assert decision.used_fallback


def test_decision_uses_reply():
    advisor = AIAdvisor(FakeClient(reply="STAND"))
    decision = asyncio.run(advisor.decide_hit_or_stand(cards("10", "2"), 12, card("7"), []))
    assert decision == decision.__class__(action=ActionKind.STAND)


def test_no_client_means_fallback():
    advisor = AIAdvisor(None)
    assert asyncio.run(advisor.decide_bet(1_000)).used_fallback


def test_gateway_reply_parsing():
    client = GatewayClient("ws://gateway.invalid")
    ok = client._parse_reply(json.dumps({"type": "completion", "text": "HIT"}))
    assert ok.text == "HIT"

    with pytest.raises(CompletionError) as err:
        client._parse_reply(json.dumps({"type": "error", "status": 401, "msg": "bad key"}))
    assert (err.value.status, err.value.msg) == (401, "bad key")

    with pytest.raises(CompletionError) as err:
        client._parse_reply(json.dumps({"type": "error"}))
    assert (err.value.status, err.value.msg) == (500, "Unknown error")

    for raw in ("not json", "[1, 2]", json.dumps({"type": "completion"})):
        with pytest.raises(CompletionError) as err:
            client._parse_reply(raw)
        assert err.value.status == 502
