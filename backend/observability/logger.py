"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging

Plain key=value lines can be selected for local development
(AppConfig.enable_json_logs = False).
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_json_output: bool = True


def configure(*, enable_json_logs: bool) -> None:
    """Select JSONL (default) or key=value output. Call once at startup."""
    global _json_output  # pylint: disable=global-statement
    _json_output = enable_json_logs


def _format_plain(event: Mapping[str, Any]) -> str:
    head = str(event.get("event_type", "LOG"))
    rest = " ".join(
        f"{key}={value!r}" for key, value in event.items() if key != "event_type"
    )
    return f"{head} {rest}".rstrip()


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single event line to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, status, run_id, etc.

    This function:
    - Serializes to JSON (or key=value when configured)
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    if not _json_output:
        _print(_format_plain(event))
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback; logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
