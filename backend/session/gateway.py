"""
Recognizer gateway for one WebSocket client.

Responsibilities:
- Track connection_status for the client
- Route inbound JSON control messages -> recognizer commands
- Subscribe to every recognizer stream and queue outbound JSON updates
- Report start failures as ERROR messages

NOT responsible for:
- Any session state machine logic (coordinator only)
- Owning the recognizer (shared per process, owned by the app)
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.status import SessionStatus
from errors import SpeechRecognitionError
from observability.logger import log_event
from recognizer.base import SpeechRecognizer
from session.connection_status import ConnectionStatus
from streams.broadcast import Subscription


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_connection_id() -> str:
    return f"conn_{uuid4().hex[:12]}"


def _message(msg_type: str, value: Any) -> dict[str, Any]:
    return {"type": msg_type, "value": value, "ts_ms": _now_ms()}


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to the client right away
    """
    outbound_json: tuple[dict[str, Any], ...] = ()


# ------------------------------------------------------------------
# RecognizerGateway
# ------------------------------------------------------------------

class RecognizerGateway:
    """
    One gateway == one WebSocket client.

    Stream updates arrive through publisher subscriptions and are queued;
    the transport drains them with next_outbound().
    """

    def __init__(self, *, recognizer: SpeechRecognizer) -> None:
        self._recognizer = recognizer
        self.connection_id = _new_connection_id()
        self.connection_status = ConnectionStatus.DOWN

        self._outbound: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._subscriptions: list[Subscription[Any]] = []
        self._tasks: set[asyncio.Task[None]] = set()

        # Mirrors of the last observed stream values (TOGGLE decisions only)
        self._authorization: AuthorizationStatus | None = None
        self._status = SessionStatus.IDLE
        self._start_when_authorized = False

    @property
    def status(self) -> SessionStatus:
        return self._status

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_ws_connect(self) -> GatewayResult:
        """Called when a WebSocket connection is established."""
        self.connection_status = ConnectionStatus.UP

        recognizer = self._recognizer
        self._subscriptions = [
            recognizer.on_authorization_status(self._on_authorization),
            recognizer.on_recognition_status(self._on_status),
            recognizer.on_recognized_utterance(
                lambda text: self._enqueue(_message("UTTERANCE", text))
            ),
            recognizer.on_new_utterance(
                lambda text: self._enqueue(_message("NEW_UTTERANCE", text))
            ),
            recognizer.on_recognition_availability(
                lambda available: self._enqueue(_message("AVAILABILITY", available))
            ),
        ]

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_CONNECTED",
            "connection_id": self.connection_id,
        })

        init_msg: dict[str, Any] = {
            "type": "SESSION_INIT",
            "connection_id": self.connection_id,
            "ts_ms": _now_ms(),
        }
        return GatewayResult(outbound_json=(init_msg,))

    async def on_ws_disconnect(self, reason: str | None = None) -> GatewayResult:
        """
        Called when the WebSocket disconnects.

        Drops this client's subscriptions. The shared recognizer keeps
        running; other clients are unaffected.
        """
        if self.connection_status is ConnectionStatus.DOWN:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_CONNECTION",
                "connection_id": self.connection_id,
                "reason": reason,
            })
            return GatewayResult()

        self.connection_status = ConnectionStatus.DOWN
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_DISCONNECTED",
            "connection_id": self.connection_id,
            "reason": reason,
        })
        return GatewayResult()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route inbound JSON to recognizer commands."""
        if self.connection_status is not ConnectionStatus.UP:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_CONNECTION",
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "connection_id": self.connection_id,
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return GatewayResult(outbound_json=(
                _message("ERROR", {"error": "JSON_DECODE_ERROR", "message": str(e)}),
            ))

        msg_type = data.get("type") if isinstance(data, dict) else None

        if msg_type == "REQUEST_AUTHORIZATION":
            await self._recognizer.request_authorization()
            return GatewayResult()

        if msg_type == "START":
            return await self._start()

        if msg_type == "STOP":
            self._start_when_authorized = False
            await self._recognizer.stop_recording()
            return GatewayResult()

        if msg_type == "TOGGLE":
            return await self._toggle()

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "UNKNOWN_MESSAGE_TYPE",
            "msg_type": msg_type,
            "connection_id": self.connection_id,
        })
        return GatewayResult(outbound_json=(
            _message("ERROR", {"error": "UNKNOWN_MESSAGE_TYPE", "message": str(msg_type)}),
        ))

    async def _toggle(self) -> GatewayResult:
        if self._status not in (SessionStatus.IDLE, SessionStatus.STOPPED):
            self._start_when_authorized = False
            await self._recognizer.stop_recording()
            return GatewayResult()

        if self._authorization is AuthorizationStatus.AUTHORIZED:
            return await self._start()

        self._start_when_authorized = True
        await self._recognizer.request_authorization()
        return GatewayResult()

    async def _start(self) -> GatewayResult:
        try:
            await self._recognizer.start_recording()
        except SpeechRecognitionError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "START_RECORDING_FAILED",
                "connection_id": self.connection_id,
                "exception": type(e).__name__,
                "message": str(e),
            })
            return GatewayResult(outbound_json=(
                _message("ERROR", {"error": type(e).__name__, "message": str(e)}),
            ))
        return GatewayResult()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def next_outbound(self) -> dict[str, Any]:
        return await self._outbound.get()

    def drain_outbound(self) -> tuple[dict[str, Any], ...]:
        messages: list[dict[str, Any]] = []
        while not self._outbound.empty():
            messages.append(self._outbound.get_nowait())
        return tuple(messages)

    def _enqueue(self, message: dict[str, Any]) -> None:
        self._outbound.put_nowait(message)

    # ------------------------------------------------------------------
    # Stream callbacks
    # ------------------------------------------------------------------

    def _on_authorization(self, status: AuthorizationStatus | None) -> None:
        self._authorization = status
        self._enqueue(_message("AUTHORIZATION", status.value if status else None))

        if not self._start_when_authorized:
            return
        if status is None or status is AuthorizationStatus.UNDETERMINED:
            return

        # a definitive answer consumes the pending TOGGLE
        self._start_when_authorized = False
        if status is AuthorizationStatus.AUTHORIZED:
            task = asyncio.ensure_future(self._start_and_report())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def _on_status(self, status: SessionStatus) -> None:
        self._status = status
        self._enqueue(_message("STATUS", status.value))

    async def _start_and_report(self) -> None:
        result = await self._start()
        for message in result.outbound_json:
            self._enqueue(message)
