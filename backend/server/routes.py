"""
Route registration for the recognizer demo API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json

from fastapi import WebSocket, WebSocketDisconnect, FastAPI

from observability.logger import log_event
from recognizer.base import SpeechRecognizer
from session.gateway import RecognizerGateway, GatewayResult


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {
            "status": "ok",
            "variant": app.state.config.recognizer_variant.value,
        }

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        recognizer: SpeechRecognizer = app.state.recognizer
        gateway = RecognizerGateway(recognizer=recognizer)

        send_lock = asyncio.Lock()
        pump: asyncio.Task[None] | None = None

        try:
            result = await gateway.on_ws_connect()
            await _flush_gateway_result(ws, result, send_lock)

            pump = asyncio.create_task(_pump_outbound(ws, gateway, send_lock))

            while True:
                text = await ws.receive_text()
                result = await gateway.on_json_message(text)
                await _flush_gateway_result(ws, result, send_lock)

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "connection_id": gateway.connection_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")

        finally:
            if pump is not None:
                pump.cancel()
                await asyncio.gather(pump, return_exceptions=True)


async def _pump_outbound(
    ws: WebSocket,
    gateway: RecognizerGateway,
    send_lock: asyncio.Lock,
) -> None:
    """Forward queued stream updates to the client until cancelled."""
    while True:
        msg = await gateway.next_outbound()
        async with send_lock:
            await ws.send_text(json.dumps(msg))


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
    send_lock: asyncio.Lock,
) -> None:
    async with send_lock:
        for msg in result.outbound_json:
            await ws.send_text(json.dumps(msg))
