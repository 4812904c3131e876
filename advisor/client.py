from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Optional, Protocol

import websockets

from blackjack.models import AIModel

LOGGER = logging.getLogger("blackjack_advisor")

# The completion gateway is a separate service that forwards prompts to the
# model providers. We only speak its small request/response protocol.

PROVIDER_GOOGLE = "google"
PROVIDER_GROQ = "groq"


def provider_for_model(model: AIModel) -> str:
    return PROVIDER_GOOGLE if "gemini" in model.value else PROVIDER_GROQ


@dataclass(frozen=True)
class CompletionRequest:
    prompt: str
    provider: str
    model: str


@dataclass(frozen=True)
class CompletionResponse:
    text: str


class CompletionError(Exception):
    def __init__(self, status: int, msg: str) -> None:
        self.status = int(status)
        super().__init__(f"{self.status} {msg}")
        self.msg = msg


class CompletionClient(Protocol):
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        ...


class GatewayClient:
    """Completion client that talks to the gateway over a websocket.

    The gateway speaks the `complete` / `completion` / `error` envelopes below,
    not a provider HTTP API. Putting a plain HTTP completion endpoint behind it
    needs a small adapter service that translates one request into the other.
    """

    def __init__(self, url: str, open_timeout: float = 5.0) -> None:
        self.url = url
        self.open_timeout = open_timeout

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        envelope = {
            "type": "complete",
            "v": 1,
            "ts": datetime.now(timezone.utc).isoformat(),
            "prompt": request.prompt,
            "provider": request.provider,
            "model": request.model,
        }
        async with websockets.connect(self.url, open_timeout=self.open_timeout) as ws:
            await ws.send(json.dumps(envelope))
            raw = await ws.recv()
        return self._parse_reply(raw)

    def _parse_reply(self, raw: object) -> CompletionResponse:
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            raise CompletionError(HTTPStatus.BAD_GATEWAY, "Gateway reply was not JSON") from None
        if not isinstance(message, dict):
            raise CompletionError(HTTPStatus.BAD_GATEWAY, "Gateway reply was not an object")

        if message.get("type") == "error":
            status = message.get("status")
            LOGGER.warning("Gateway error status=%s body=%s", status, message)
            raise CompletionError(
                status if isinstance(status, int) else HTTPStatus.INTERNAL_SERVER_ERROR,
                str(message.get("msg") or "Unknown error"),
            )

        text: Optional[object] = message.get("text")
        if message.get("type") != "completion" or not isinstance(text, str):
            raise CompletionError(HTTPStatus.BAD_GATEWAY, "Gateway reply had no text")
        return CompletionResponse(text=text)
