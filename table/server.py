from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

import websockets
from websockets.asyncio.server import ServerConnection

from advisor.client import GatewayClient
from advisor.decisions import AIAdvisor
from blackjack.actions import INTERNAL_KINDS, Action, Hit, PlaceBet, Stand, action_payload, parse_action
from blackjack.game import snapshot_payload
from blackjack.models import GameState, TableConfig
from blackjack.store import GameStore

from .driver import GameDriver

LOGGER = logging.getLogger("blackjack_table")

# TableServer exposes the dispatch surface to websocket clients. Every client
# sees the whole table and may act for any seat (one shared screen); the engine
# itself decides whose turn it is.

_INTERNAL_NAMES = {kind.value for kind in INTERNAL_KINDS}


@dataclass
class ClientSession:
    client_id: int
    name: str
    websocket: ServerConnection


class TableServer:
    def __init__(
        self,
        config: TableConfig,
        advisor: Optional[AIAdvisor] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.table_id = "T-1"
        self.store = GameStore(config, rng)
        if advisor is None:
            client = GatewayClient(config.gateway_url) if config.gateway_url else None
            advisor = AIAdvisor(client, timeout_s=config.ai_timeout_ms / 1000)
        self.driver = GameDriver(self.store, advisor, config)
        self.sessions: Dict[int, ClientSession] = {}
        self.next_client_id = 1
        self.outbox: "asyncio.Queue[str]" = asyncio.Queue()
        self.publisher_task: Optional[asyncio.Task] = None
        self.store.subscribe(self._on_transition)

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        self.driver.start()
        self.publisher_task = asyncio.create_task(self._publish_loop())
        try:
            async with websockets.serve(self._handle_connection, host, port):
                LOGGER.info("Blackjack table listening on %s:%s", host, port)
                await asyncio.Future()
        finally:
            await self.driver.stop()
            self.publisher_task.cancel()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return

        client_id = self.next_client_id
        self.next_client_id += 1
        name_raw = hello.get("name")
        name = name_raw.strip() if isinstance(name_raw, str) and name_raw.strip() else f"Client {client_id}"
        session = ClientSession(client_id=client_id, name=name, websocket=websocket)
        self.sessions[client_id] = session
        LOGGER.info("Client %s (%s) connected", client_id, name)

        await self._send_json(
            websocket,
            "welcome",
            {
                "table_id": self.table_id,
                "client_id": client_id,
                "config": {
                    "max_players": self.config.max_players,
                    "starting_chips": self.config.starting_chips,
                    "dealer_stands_on": self.config.dealer_stands_on,
                    "default_ai_model": self.config.default_ai_model.value,
                },
            },
        )
        await self._send_json(websocket, "state", {"state": snapshot_payload(self.store.state)})

        try:
            async for raw in websocket:
                message = self._decode(raw)
                if message.get("type") == "action":
                    await self._handle_action(session, message)
                else:
                    await self._send_error(websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
        except websockets.ConnectionClosed:
            pass
        finally:
            self.sessions.pop(client_id, None)
            LOGGER.info("Client %s (%s) disconnected", client_id, name)

    async def _handle_action(self, session: ClientSession, message: Dict[str, object]) -> None:
        if message.get("action") in _INTERNAL_NAMES:
            await self._send_error(session.websocket, code="FORBIDDEN_ACTION", msg="Action is reserved for the table")
            return

        try:
            action = parse_action(message)
        except ValueError as exc:
            code = "UNKNOWN_ACTION" if str(exc).startswith("Unsupported action") else "BAD_SCHEMA"
            LOGGER.warning("Rejected message from client %s: %s", session.client_id, exc)
            await self._send_error(session.websocket, code=code, msg=str(exc))
            return

        if self._is_ai_seat(action):
            await self._send_error(session.websocket, code="OUT_OF_TURN", msg="AI players act on their own")
            return

        before = self.store.state
        after = self.store.dispatch(action)
        if after is before:
            await self._send_error(session.websocket, code="NOT_ALLOWED", msg="Action not allowed right now")

    def _is_ai_seat(self, action: Action) -> bool:
        # AI seats are played by the driver only.
        state = self.store.state
        if isinstance(action, PlaceBet):
            target = state.find_player(action.player_id)
        elif isinstance(action, (Hit, Stand)):
            target = state.find_player(action.player_id) if action.player_id else state.current_player
        else:
            return False
        return target is not None and target.is_ai

    # Publishing ------------------------------------------------------

    def _on_transition(self, state: GameState, action: Action) -> None:
        body = {"state": snapshot_payload(state), "cause": action_payload(action)}
        # Snapshots go out in dispatch order through a single queue.
        self.outbox.put_nowait(self._envelope("state", body))

    async def _publish_loop(self) -> None:
        while True:
            message = await self.outbox.get()
            await self._broadcast_raw(message)

    async def _broadcast_raw(self, message: str) -> None:
        targets = [session.websocket for session in self.sessions.values()]
        if not targets:
            return
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: ServerConnection) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: object) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return {}
        return message if isinstance(message, dict) else {}
