# pylint: disable=missing-module-docstring,missing-function-docstring

from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from config import AppConfig
from observability import logger
from recognizer.preview import PreviewSpeechRecognizer
from recognizer.variant import RecognizerVariant
from server.app import create_app


@pytest.fixture(autouse=True)
def _quiet(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda line: None)


@pytest.fixture(name="client")
def fixture_client():  # type: ignore[no-untyped-def]
    preview = PreviewSpeechRecognizer(
        words=("hello", "world"),
        authorization_delay_s=0,
        word_delay_per_char_s=0,
        stop_delay_s=0,
    )
    app = create_app(
        config=AppConfig(recognizer_variant=RecognizerVariant.PREVIEW),
        recognizer=preview,
    )
    with TestClient(app) as client:
        yield client


def receive_until(ws, done: Callable[[dict[str, Any]], bool], limit: int = 50) -> list[dict[str, Any]]:  # type: ignore[no-untyped-def]
    messages: list[dict[str, Any]] = []
    for _ in range(limit):
        msg = ws.receive_json()
        messages.append(msg)
        if done(msg):
            return messages
    raise AssertionError(f"condition not met, got {messages}")


def test_health_reports_variant(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "variant": "preview"}


def test_ws_session_roundtrip(client: TestClient):
    with client.websocket_connect("/ws") as ws:
        init = ws.receive_json()
        assert init["type"] == "SESSION_INIT"
        assert init["connection_id"].startswith("conn_")

        receive_until(ws, lambda m: m["type"] == "AVAILABILITY" and m["value"] is True)

        ws.send_json({"type": "START"})
        started = receive_until(
            ws, lambda m: m["type"] == "NEW_UTTERANCE" and m["value"] == "hello world"
        )
        assert {"type": "STATUS", "value": "RECORDING"} in [
            {"type": m["type"], "value": m["value"]} for m in started
        ]

        ws.send_json({"type": "STOP"})
        receive_until(ws, lambda m: m["type"] == "STATUS" and m["value"] == "STOPPED")


def test_ws_unknown_message_gets_error(client: TestClient):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "DANCE"})

        error = receive_until(ws, lambda m: m["type"] == "ERROR")[-1]
        assert error["value"]["error"] == "UNKNOWN_MESSAGE_TYPE"
