"""
Side-effect command definitions for the coordinator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.status import SessionStatus

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Platform
    REQUEST_AUTHORIZATION = "REQUEST_AUTHORIZATION"
    BEGIN_CAPTURE = "BEGIN_CAPTURE"
    END_AUDIO = "END_AUDIO"
    CANCEL_RECOGNITION = "CANCEL_RECOGNITION"
    TEARDOWN_CAPTURE = "TEARDOWN_CAPTURE"

    # Streams
    PUBLISH_AUTHORIZATION = "PUBLISH_AUTHORIZATION"
    PUBLISH_UTTERANCE = "PUBLISH_UTTERANCE"
    PUBLISH_STATUS = "PUBLISH_STATUS"
    PUBLISH_AVAILABILITY = "PUBLISH_AVAILABILITY"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Platform Commands
# =============================================================================

@dataclass(frozen=True)
class RequestAuthorization(Command):
    """Trigger the platform consent prompt once."""
    command_type: CommandType = CommandType.REQUEST_AUTHORIZATION


@dataclass(frozen=True)
class BeginCapture(Command):
    """
    Acquire every session resource for run_id, in order:
    audio session, recognition request, recognition task, tap, engine.

    The runtime reports CaptureStarted or CaptureFailed back.
    """
    run_id: int
    command_type: CommandType = CommandType.BEGIN_CAPTURE


@dataclass(frozen=True)
class EndAudio(Command):
    """Stop the engine and signal end-of-audio to the request of run_id."""
    run_id: int
    command_type: CommandType = CommandType.END_AUDIO


@dataclass(frozen=True)
class CancelRecognition(Command):
    """Cancel the recognition task of run_id (late callbacks are stale)."""
    run_id: int
    command_type: CommandType = CommandType.CANCEL_RECOGNITION


@dataclass(frozen=True)
class TeardownCapture(Command):
    """Stop engine, remove tap, clear request/task references of run_id."""
    run_id: int
    command_type: CommandType = CommandType.TEARDOWN_CAPTURE


# =============================================================================
# Stream Commands
# =============================================================================

@dataclass(frozen=True)
class PublishAuthorization(Command):
    status: AuthorizationStatus
    command_type: CommandType = CommandType.PUBLISH_AUTHORIZATION


@dataclass(frozen=True)
class PublishUtterance(Command):
    """None is published when a session starts."""
    text: str | None
    command_type: CommandType = CommandType.PUBLISH_UTTERANCE


@dataclass(frozen=True)
class PublishStatus(Command):
    status: SessionStatus
    command_type: CommandType = CommandType.PUBLISH_STATUS


@dataclass(frozen=True)
class PublishAvailability(Command):
    available: bool
    command_type: CommandType = CommandType.PUBLISH_AVAILABILITY


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
