"""
Unified event definitions for the coordinator reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Platform callbacks (authorization result, recognition result, availability
change) are converted into events by the runtime before they touch state.
Recognition events carry the run_id of the session that produced them so
the reducer can drop callbacks from a superseded session.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from coordinator.enums.authorization import AuthorizationStatus


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (status, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Caller commands
    # ------------------------------------------------------------------
    AUTHORIZATION_REQUESTED = "AUTHORIZATION_REQUESTED"
    START_REQUESTED = "START_REQUESTED"
    STOP_REQUESTED = "STOP_REQUESTED"

    # ------------------------------------------------------------------
    # Capture outcome (reported by runtime after BeginCapture)
    # ------------------------------------------------------------------
    CAPTURE_STARTED = "CAPTURE_STARTED"
    CAPTURE_FAILED = "CAPTURE_FAILED"

    # ------------------------------------------------------------------
    # Platform callbacks
    # ------------------------------------------------------------------
    AUTHORIZATION_RESULT = "AUTHORIZATION_RESULT"
    AVAILABILITY_CHANGED = "AVAILABILITY_CHANGED"
    RECOGNITION_UPDATE = "RECOGNITION_UPDATE"
    RECOGNITION_ENDED = "RECOGNITION_ENDED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class SessionEvent(Event):
    """
    Base class for events scoped to one recording session.

    The reducer MUST ignore events whose run_id does not match the
    currently active session.
    """

    run_id: int


# =============================================================================
# Caller Commands
# =============================================================================

@dataclass(frozen=True)
class AuthorizationRequested(Event):
    """Caller asked for the platform consent prompt."""


@dataclass(frozen=True)
class StartRequested(Event):
    """Caller asked to start a recording session."""


@dataclass(frozen=True)
class StopRequested(Event):
    """Caller asked to stop the current recording session."""


# =============================================================================
# Capture Outcome
# =============================================================================

@dataclass(frozen=True)
class CaptureStarted(SessionEvent):
    """Audio session, request, task, tap and engine are all live."""


@dataclass(frozen=True)
class CaptureFailed(SessionEvent):
    """
    BeginCapture raised; partial resources were already rolled back.

    reason is the exception class name (observability only).
    """
    reason: str


# =============================================================================
# Platform Callbacks
# =============================================================================

@dataclass(frozen=True)
class AuthorizationResult(Event):
    """Consent flow finished (or changed)."""
    status: AuthorizationStatus


@dataclass(frozen=True)
class AvailabilityChanged(Event):
    """Recognizer service availability flipped."""
    available: bool


@dataclass(frozen=True)
class RecognitionUpdate(SessionEvent):
    """
    Best-guess transcription for the session so far.

    Replaces (does not append to) the previous utterance.
    """
    text: str
    is_final: bool = False


@dataclass(frozen=True)
class RecognitionEnded(SessionEvent):
    """
    The recognition task will not deliver more results.

    Emitted after a final result or an error. reason is None for a normal
    end; errors and normal ends are handled identically except for logging.
    """
    reason: str | None = None
