"""
Latency metrics, emitted as log events.

Each measurement becomes exactly one METRIC_TIMER event through
observability.logger; nothing is aggregated in-process.

Measured today:
- session_start_latency: StartRequested -> capture running (or failed)
- recognition_decode_latency: one Whisper decode (partial or final)

Durations use monotonic time. ts_ms is wall-clock, for correlation with the
other log events. Timers may be started and stopped on executor threads.
"""

from __future__ import annotations

import threading
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


# timer_id -> (metric name, monotonic start)
_timers: dict[str, tuple[str, int]] = {}
_timers_lock = threading.Lock()


def start_timer(name: str) -> str:
    """
    Start a timer and return its id.

    Every id must reach stop_timer(); prefer timed().
    """
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    with _timers_lock:
        _timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    coordinator_id: str | None = None,
    run_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """Emit the metric. Returns the duration in ms, or None for an unknown id."""
    with _timers_lock:
        entry = _timers.pop(timer_id, None)
    if entry is None:
        return None

    name, started_ns = entry
    value_ms = (time.monotonic_ns() - started_ns) // 1_000_000

    log_event({
        "ts_ms": time.time_ns() // 1_000_000,
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": value_ms,
        "coordinator_id": coordinator_id,
        "run_id": run_id,
        "details": details or {},
    })
    return value_ms


@contextmanager
def timed(
    name: str,
    *,
    coordinator_id: str | None = None,
    run_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Time the block; the metric is emitted once even if the block raises.

    details gains "outcome": "ok" or "error".

        with timed("recognition_decode_latency", details={"final": True}):
            result = engine.transcribe(audio)
    """
    timer_id = start_timer(name)
    outcome = "error"
    try:
        yield
        outcome = "ok"
    finally:
        stop_timer(
            timer_id,
            coordinator_id=coordinator_id,
            run_id=run_id,
            details={**(details or {}), "outcome": outcome},
        )
