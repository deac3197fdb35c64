# pylint: disable=missing-module-docstring,missing-function-docstring
from coordinator.reducer import reduce
from coordinator.state_dataclass import CoordinatorState
from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.policy import DoubleStartPolicy
from coordinator.enums.status import SessionStatus

from coordinator.events import (
    AuthorizationRequested,
    AuthorizationResult,
    AvailabilityChanged,
    CaptureFailed,
    CaptureStarted,
    EventType,
    RecognitionEnded,
    RecognitionUpdate,
    StartRequested,
    StopRequested,
)

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


# ---------------------------------------------------------------------
# Event helpers (mirror runtime construction)
# ---------------------------------------------------------------------

def start(ts_ms: int = 0) -> StartRequested:
    return StartRequested(ts_ms=ts_ms, event_type=EventType.START_REQUESTED)


def stop(ts_ms: int = 0) -> StopRequested:
    return StopRequested(ts_ms=ts_ms, event_type=EventType.STOP_REQUESTED)


def started(run_id: int) -> CaptureStarted:
    return CaptureStarted(ts_ms=0, event_type=EventType.CAPTURE_STARTED, run_id=run_id)


def failed(run_id: int, reason: str = "ConfigurationError") -> CaptureFailed:
    return CaptureFailed(
        ts_ms=0, event_type=EventType.CAPTURE_FAILED, run_id=run_id, reason=reason
    )


def update(run_id: int, text: str, is_final: bool = False) -> RecognitionUpdate:
    return RecognitionUpdate(
        ts_ms=0,
        event_type=EventType.RECOGNITION_UPDATE,
        run_id=run_id,
        text=text,
        is_final=is_final,
    )


def ended(run_id: int, reason: str | None = None) -> RecognitionEnded:
    return RecognitionEnded(
        ts_ms=0, event_type=EventType.RECOGNITION_ENDED, run_id=run_id, reason=reason
    )


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def decisions(commands: tuple[Command, ...]) -> list[str]:
    return [c.event["decision"] for c in commands if isinstance(c, LogEvent)]


def side_effects(commands: tuple[Command, ...]) -> list[Command]:
    return [c for c in commands if not isinstance(c, LogEvent)]


def recording(run_id: int = 1, **kwargs: object) -> CoordinatorState:
    return CoordinatorState(
        status=SessionStatus.RECORDING,
        run_id=run_id,
        capture_run_id=run_id,
        is_available=True,
        **kwargs,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------
# 1. Reducer shape & purity
# ---------------------------------------------------------------------

def test_initial_state():
    state = CoordinatorState()

    assert state.status is SessionStatus.IDLE
    assert state.authorization is None
    assert state.utterance is None
    assert state.is_available is False
    assert state.run_id == 0


def test_reducer_does_not_mutate_input_state():
    state = CoordinatorState()

    reduce(state, start())

    assert state == CoordinatorState()


def test_reducer_is_deterministic():
    state = recording(run_id=3)

    assert reduce(state, stop(ts_ms=5)) == reduce(state, stop(ts_ms=5))


# ---------------------------------------------------------------------
# 2. Start
# ---------------------------------------------------------------------

def test_start_from_idle_resets_utterance_and_requests_capture():
    state = CoordinatorState(utterance="old text")

    new_state, commands = reduce(state, start())

    assert new_state.run_id == 1
    assert new_state.utterance is None
    # Status changes only once capture is confirmed
    assert new_state.status is SessionStatus.IDLE
    assert side_effects(commands) == [
        PublishUtterance(text=None),
        BeginCapture(run_id=1),
    ]
    assert "begin_session" in decisions(commands)


def test_capture_started_moves_to_recording():
    state, _ = reduce(CoordinatorState(), start())

    new_state, commands = reduce(state, started(run_id=1))

    assert new_state.status is SessionStatus.RECORDING
    assert new_state.capture_run_id == 1
    assert PublishStatus(status=SessionStatus.RECORDING) in commands


def test_capture_failed_leaves_status_untouched():
    state, _ = reduce(CoordinatorState(status=SessionStatus.STOPPED), start())

    new_state, commands = reduce(state, failed(run_id=1))

    assert new_state.status is SessionStatus.STOPPED
    assert new_state.capture_run_id is None
    assert side_effects(commands) == []
    assert decisions(commands) == ["capture_failed"]


def test_start_from_stopping_cancels_leftover_task_first():
    state = recording(run_id=1, utterance="partial")
    state, _ = reduce(state, stop())
    assert state.status is SessionStatus.STOPPING

    new_state, commands = reduce(state, start())

    assert side_effects(commands) == [
        CancelRecognition(run_id=1),
        TeardownCapture(run_id=1),
        PublishStatus(status=SessionStatus.STOPPED),
        PublishUtterance(text=None),
        BeginCapture(run_id=2),
    ]
    assert new_state.run_id == 2
    assert new_state.status is SessionStatus.STOPPED


def test_start_from_stopped_without_leftover_publishes_no_extra_status():
    state = CoordinatorState(status=SessionStatus.STOPPED, run_id=4)

    _, commands = reduce(state, start())

    assert not any(isinstance(c, PublishStatus) for c in commands)
    assert BeginCapture(run_id=5) in commands


# ---------------------------------------------------------------------
# 3. Double start policies
# ---------------------------------------------------------------------

def test_double_start_restart_is_default():
    assert CoordinatorState().double_start_policy is DoubleStartPolicy.RESTART


def test_double_start_restart_passes_through_stopped():
    state = recording(run_id=2, utterance="hello")

    new_state, commands = reduce(state, start())

    assert side_effects(commands) == [
        CancelRecognition(run_id=2),
        TeardownCapture(run_id=2),
        PublishStatus(status=SessionStatus.STOPPED),
        PublishUtterance(text=None),
        BeginCapture(run_id=3),
    ]
    assert new_state.run_id == 3
    assert new_state.capture_run_id is None

    new_state, commands = reduce(new_state, started(run_id=3))
    assert new_state.status is SessionStatus.RECORDING


def test_double_start_toggle_behaves_like_stop():
    state = recording(run_id=2, double_start_policy=DoubleStartPolicy.TOGGLE)

    new_state, commands = reduce(state, start())

    assert new_state.status is SessionStatus.STOPPING
    assert new_state.run_id == 2
    assert side_effects(commands) == [
        EndAudio(run_id=2),
        PublishStatus(status=SessionStatus.STOPPING),
    ]


def test_double_start_ignore_is_noop():
    state = recording(run_id=2, double_start_policy=DoubleStartPolicy.IGNORE)

    new_state, commands = reduce(state, start())

    assert new_state == state
    assert side_effects(commands) == []
    assert decisions(commands) == ["start_ignored_already_recording"]


# ---------------------------------------------------------------------
# 4. Stop
# ---------------------------------------------------------------------

def test_stop_while_recording_ends_audio_and_moves_to_stopping():
    state = recording(run_id=1)

    new_state, commands = reduce(state, stop())

    assert new_state.status is SessionStatus.STOPPING
    assert new_state.capture_run_id == 1
    assert side_effects(commands) == [
        EndAudio(run_id=1),
        PublishStatus(status=SessionStatus.STOPPING),
    ]


def test_stop_when_idle_publishes_stopped_without_touching_hardware():
    new_state, commands = reduce(CoordinatorState(), stop())

    assert new_state.status is SessionStatus.STOPPED
    assert side_effects(commands) == [PublishStatus(status=SessionStatus.STOPPED)]
    assert "stop_noop_not_recording" in decisions(commands)


def test_stop_when_stopped_repeats_the_signal():
    state = CoordinatorState(status=SessionStatus.STOPPED)

    _, commands = reduce(state, stop())

    assert side_effects(commands) == [PublishStatus(status=SessionStatus.STOPPED)]


# ---------------------------------------------------------------------
# 5. Recognition callbacks
# ---------------------------------------------------------------------

def test_update_replaces_utterance():
    state = recording(run_id=1, utterance="hel")

    new_state, commands = reduce(state, update(run_id=1, text="hello"))

    assert new_state.utterance == "hello"
    assert side_effects(commands) == [PublishUtterance(text="hello")]


def test_final_update_then_ended_publishes_text_before_teardown():
    state = recording(run_id=1)

    state, first = reduce(state, update(run_id=1, text="hello world", is_final=True))
    state, second = reduce(state, ended(run_id=1))

    assert side_effects(first) == [PublishUtterance(text="hello world")]
    assert side_effects(second) == [
        TeardownCapture(run_id=1),
        PublishStatus(status=SessionStatus.STOPPED),
    ]
    assert state.status is SessionStatus.STOPPED
    assert state.capture_run_id is None
    assert state.utterance == "hello world"


def test_ended_while_stopping_moves_to_stopped():
    state = recording(run_id=1)
    state, _ = reduce(state, stop())

    new_state, _ = reduce(state, ended(run_id=1))

    assert new_state.status is SessionStatus.STOPPED


def test_error_end_is_handled_like_a_normal_end():
    state = recording(run_id=1)

    new_state, commands = reduce(state, ended(run_id=1, reason="WhisperBackendError"))

    assert new_state.status is SessionStatus.STOPPED
    assert TeardownCapture(run_id=1) in commands
    log = [c for c in commands if isinstance(c, LogEvent)
           and c.event["decision"] == "recognition_ended"][0]
    assert log.event["details"]["reason"] == "WhisperBackendError"


# ---------------------------------------------------------------------
# 6. Generation gating (critical invariant)
# ---------------------------------------------------------------------

def test_stale_update_is_ignored():
    state = recording(run_id=2, utterance="current")

    new_state, commands = reduce(state, update(run_id=1, text="late"))

    assert new_state == state
    assert side_effects(commands) == []
    assert decisions(commands) == ["ignore"]


def test_stale_ended_is_ignored():
    state = recording(run_id=2)

    new_state, commands = reduce(state, ended(run_id=1))

    assert new_state == state
    assert "ignore" in decisions(commands)


def test_update_after_teardown_is_ignored():
    state = recording(run_id=1)
    state, _ = reduce(state, ended(run_id=1))

    new_state, commands = reduce(state, update(run_id=1, text="late"))

    assert new_state == state
    assert decisions(commands) == ["ignore"]


def test_callbacks_of_cancelled_session_are_ignored_after_restart():
    state = recording(run_id=1)
    state, _ = reduce(state, start())
    state, _ = reduce(state, started(run_id=2))

    new_state, commands = reduce(state, update(run_id=1, text="ghost"))

    assert new_state.utterance is None
    assert side_effects(commands) == []


def test_stale_capture_outcomes_are_ignored():
    state = CoordinatorState(run_id=3)

    assert decisions(reduce(state, started(run_id=2))[1]) == ["ignore"]
    assert decisions(reduce(state, failed(run_id=2))[1]) == ["ignore"]


# ---------------------------------------------------------------------
# 7. Authorization & availability
# ---------------------------------------------------------------------

def test_authorization_request_emits_platform_command():
    state = CoordinatorState()
    event = AuthorizationRequested(ts_ms=0, event_type=EventType.AUTHORIZATION_REQUESTED)

    new_state, commands = reduce(state, event)

    assert new_state == state
    assert side_effects(commands) == [RequestAuthorization()]


def test_authorization_result_is_published_every_time():
    state = CoordinatorState()

    for status in (
        AuthorizationStatus.AUTHORIZED,
        AuthorizationStatus.DENIED,
        AuthorizationStatus.DENIED,
    ):
        event = AuthorizationResult(
            ts_ms=0, event_type=EventType.AUTHORIZATION_RESULT, status=status
        )
        state, commands = reduce(state, event)
        assert side_effects(commands) == [PublishAuthorization(status=status)]

    assert state.authorization is AuthorizationStatus.DENIED


def test_availability_change_is_independent_of_status():
    state = recording(run_id=1)
    event = AvailabilityChanged(
        ts_ms=0, event_type=EventType.AVAILABILITY_CHANGED, available=False
    )

    new_state, commands = reduce(state, event)

    assert new_state.is_available is False
    assert new_state.status is SessionStatus.RECORDING
    assert side_effects(commands) == [PublishAvailability(available=False)]
