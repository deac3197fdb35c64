# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger
from observability import metrics


@pytest.fixture(name="captured")
def fixture_captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", lines.append)
    monkeypatch.setattr(logger, "_json_output", True)
    return lines


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload is serialized as-is
    - output sink is patchable
    """
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    # Exactly one line emitted
    assert len(captured) == 1

    # Payload must be preserved exactly
    assert json.loads(captured[0]) == payload


def test_log_event_never_raises_on_unserializable_payload(captured: list[str]) -> None:
    logger.log_event({"ts_ms": 7, "event_type": "TEST", "value": object()})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 7


def test_plain_output_when_json_disabled(
    captured: list[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(logger, "_json_output", False)

    logger.log_event({"event_type": "TEST", "run_id": 2})

    assert captured == ["TEST run_id=2"]


def test_configure_switches_output(captured: list[str]) -> None:
    logger.configure(enable_json_logs=False)
    try:
        logger.log_event({"event_type": "A"})
    finally:
        logger.configure(enable_json_logs=True)

    logger.log_event({"event_type": "B"})

    assert captured[0] == "A"
    assert json.loads(captured[1]) == {"event_type": "B"}


def test_timed_emits_one_metric_even_on_error(captured: list[str]) -> None:
    with pytest.raises(ValueError):
        with metrics.timed("session_start_latency", coordinator_id="c1", run_id=4):
            raise ValueError("boom")

    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "METRIC_TIMER"
    assert decoded["metric"] == "session_start_latency"
    assert decoded["coordinator_id"] == "c1"
    assert decoded["run_id"] == 4
    assert decoded["value_ms"] >= 0
    assert decoded["details"] == {"outcome": "error"}


def test_stop_timer_unknown_id_is_noop(captured: list[str]) -> None:
    assert metrics.stop_timer("timer_missing") is None
    assert not captured
