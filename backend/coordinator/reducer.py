"""
Pure coordinator reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (status, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from coordinator.commands import (
    BeginCapture,
    CancelRecognition,
    Command,
    EndAudio,
    LogEvent,
    PublishAuthorization,
    PublishAvailability,
    PublishStatus,
    PublishUtterance,
    RequestAuthorization,
    TeardownCapture,
)
from coordinator.enums.policy import DoubleStartPolicy
from coordinator.enums.status import SessionStatus
from coordinator.events import (
    AuthorizationRequested,
    AuthorizationResult,
    AvailabilityChanged,
    CaptureFailed,
    CaptureStarted,
    Event,
    RecognitionEnded,
    RecognitionUpdate,
    SessionEvent,
    StartRequested,
    StopRequested,
)
from coordinator.state_dataclass import CoordinatorState


# =============================================================================
# Session generation invariants
# =============================================================================
# - run_id is bumped ONLY when a new session is attempted
# - Cancellation and teardown never bump run_id
# - Recognition events are admitted only for run_id == capture_run_id
# - Resources are released in order: cancel task, stop engine, remove tap,
#   clear references


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: CoordinatorState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "status": state.status.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "run_id": state.run_id,
            "capture_run_id": state.capture_run_id,
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(
    state: CoordinatorState, event: Event, reason: str
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _set_status(
    state: CoordinatorState,
    event: Event,
    status: SessionStatus,
    source: str,
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    """
    Move to `status` and publish it.

    Publishing happens even when the value does not change; callers decide
    whether a repeated value is a meaningful signal.
    """
    new_state = replace(state, status=status)
    return new_state, (
        PublishStatus(status=status),
        _log(
            new_state,
            event,
            "state_changed",
            {
                "from_status": state.status.value,
                "to_status": status.value,
                "source": source,
            },
        ),
    )


def _is_stale(state: CoordinatorState, event: SessionEvent) -> bool:
    return event.run_id != state.run_id or state.capture_run_id != event.run_id


def _release_capture(
    state: CoordinatorState,
    event: Event,
    source: str,
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    """
    Cancel and tear down the session currently holding resources.

    The cancelled task's late callbacks become stale because capture_run_id
    is cleared. Publishes STOPPED unless already there.
    """
    if state.capture_run_id is None:
        return state, ()

    held = state.capture_run_id
    cmds: tuple[Command, ...] = (
        CancelRecognition(run_id=held),
        TeardownCapture(run_id=held),
    )
    new_state = replace(state, capture_run_id=None)

    if new_state.status is not SessionStatus.STOPPED:
        new_state, status_cmds = _set_status(
            new_state, event, SessionStatus.STOPPED, source
        )
        cmds += status_cmds

    return new_state, cmds + (
        _log(new_state, event, "capture_released", {"released_run_id": held}),
    )


def _begin_session(
    state: CoordinatorState,
    event: Event,
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    """
    Bump the generation, reset the utterance, request capture.

    Status stays unchanged until CaptureStarted arrives.
    """
    new_run = state.run_id + 1
    new_state = replace(
        state,
        run_id=new_run,
        utterance=None,
        last_result_final=False,
    )
    return new_state, (
        PublishUtterance(text=None),
        BeginCapture(run_id=new_run),
        _log(new_state, event, "begin_session", {"new_run_id": new_run}),
    )


def _stop_recording(
    state: CoordinatorState,
    event: Event,
    source: str,
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    if state.status is SessionStatus.RECORDING and state.capture_run_id is not None:
        new_state, status_cmds = _set_status(
            state, event, SessionStatus.STOPPING, source
        )
        return new_state, _logs_last(
            (EndAudio(run_id=state.capture_run_id),) + status_cmds
        )

    # Not recording: idempotent STOPPED signal, no hardware touched
    new_state, status_cmds = _set_status(
        state, event, SessionStatus.STOPPED, f"{source}_not_recording"
    )
    return new_state, _logs_last(
        status_cmds + (_log(new_state, event, "stop_noop_not_recording"),)
    )


# =============================================================================
# Reducer
# =============================================================================

def reduce(
    state: CoordinatorState, event: Event
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    """
    Pure reducer for the recording session state machine.

    Given the current coordinator state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (status, event) pair is handled or explicitly ignored
    - Generation-safe: ignores recognition events from superseded sessions
    """

    # ------------------------------------------------------------------
    # Authorization / availability (independent of session status)
    # ------------------------------------------------------------------
    if isinstance(event, AuthorizationRequested):
        return state, (
            RequestAuthorization(),
            _log(state, event, "request_authorization"),
        )

    if isinstance(event, AuthorizationResult):
        new_state = replace(state, authorization=event.status)
        return new_state, (
            PublishAuthorization(status=event.status),
            _log(
                new_state,
                event,
                "authorization_changed",
                {
                    "from": state.authorization.value if state.authorization else None,
                    "to": event.status.value,
                },
            ),
        )

    if isinstance(event, AvailabilityChanged):
        new_state = replace(state, is_available=event.available)
        return new_state, (
            PublishAvailability(available=event.available),
            _log(
                new_state,
                event,
                "availability_changed",
                {"from": state.is_available, "to": event.available},
            ),
        )

    # ------------------------------------------------------------------
    # Caller: start
    # ------------------------------------------------------------------
    if isinstance(event, StartRequested):
        if state.status is SessionStatus.RECORDING:
            policy = state.double_start_policy

            if policy is DoubleStartPolicy.IGNORE:
                return state, (
                    _log(state, event, "start_ignored_already_recording"),
                )

            if policy is DoubleStartPolicy.TOGGLE:
                return _stop_recording(state, event, "double_start_toggle")

            released, release_cmds = _release_capture(
                state, event, "double_start_restart"
            )
            new_state, begin_cmds = _begin_session(released, event)
            return new_state, _logs_last(release_cmds + begin_cmds)

        # IDLE / STOPPING / STOPPED: drop any leftover task first
        released, release_cmds = _release_capture(state, event, "leftover_session")
        new_state, begin_cmds = _begin_session(released, event)
        return new_state, _logs_last(release_cmds + begin_cmds)

    # ------------------------------------------------------------------
    # Caller: stop
    # ------------------------------------------------------------------
    if isinstance(event, StopRequested):
        return _stop_recording(state, event, "stop_requested")

    # ------------------------------------------------------------------
    # Capture outcome
    # ------------------------------------------------------------------
    if isinstance(event, CaptureStarted):
        if event.run_id != state.run_id:
            return _ignore(state, event, "capture_started_stale")
        started = replace(state, capture_run_id=event.run_id)
        new_state, status_cmds = _set_status(
            started, event, SessionStatus.RECORDING, "capture_started"
        )
        return new_state, status_cmds

    if isinstance(event, CaptureFailed):
        if event.run_id != state.run_id:
            return _ignore(state, event, "capture_failed_stale")
        return state, (
            _log(state, event, "capture_failed", {"reason": event.reason}),
        )

    # ------------------------------------------------------------------
    # Recognition task callbacks
    # ------------------------------------------------------------------
    if isinstance(event, RecognitionUpdate):
        if _is_stale(state, event):
            return _ignore(state, event, "recognition_update_stale")
        new_state = replace(
            state,
            utterance=event.text,
            last_result_final=event.is_final,
        )
        return new_state, (
            PublishUtterance(text=event.text),
            _log(
                new_state,
                event,
                "recognition_update",
                {"len": len(event.text), "is_final": event.is_final},
            ),
        )

    if isinstance(event, RecognitionEnded):
        if _is_stale(state, event):
            return _ignore(state, event, "recognition_ended_stale")

        cmds: tuple[Command, ...] = (TeardownCapture(run_id=event.run_id),)
        new_state = replace(state, capture_run_id=None)

        if new_state.status is not SessionStatus.STOPPED:
            new_state, status_cmds = _set_status(
                new_state, event, SessionStatus.STOPPED, "recognition_ended"
            )
            cmds += status_cmds

        return new_state, _logs_last(cmds + (
            _log(
                new_state,
                event,
                "recognition_ended",
                {
                    "reason": event.reason,
                    "final": state.last_result_final,
                },
            ),
        ))

    return _ignore(state, event, "unhandled_event")
