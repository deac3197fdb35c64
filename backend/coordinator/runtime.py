"""
Runtime execution shell for one recognition session coordinator.

Responsibilities:
- Own coordinator state
- Call the pure reducer
- Execute commands with side effects (capture, recognition, publication)
- Convert platform callbacks into events, on the event loop
- Roll back partially acquired resources when a start fails

Non-responsibilities:
- No lifecycle decisions (reducer only)
- No transport concerns (WebSocket, JSON)
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any

from adapters.audio.base import AudioCaptureAdapter
from adapters.speech.base import (
    RecognitionRequest,
    RecognitionResult,
    RecognitionTask,
    ResultHandler,
    SpeechRecognizerAdapter,
)
from coordinator.channels import CoordinatorChannels
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
from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.policy import DoubleStartPolicy
from coordinator.enums.status import SessionStatus
from coordinator.events import (
    AuthorizationRequested,
    AuthorizationResult,
    AvailabilityChanged,
    CaptureFailed,
    CaptureStarted,
    Event,
    EventType,
    RecognitionEnded,
    RecognitionUpdate,
    StartRequested,
    StopRequested,
)
from coordinator.reducer import reduce
from coordinator.state_dataclass import CoordinatorState
from errors import SpeechRecognitionError
from observability.logger import log_event
from observability.metrics import timed


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class _ActiveCapture:
    """Resources held by the session that reached RECORDING."""
    run_id: int
    request: RecognitionRequest
    task: RecognitionTask


class Runtime:
    """
    Runtime execution boundary for one coordinator.

    Architectural role:
    Runtime is the bridge between the pure coordination layer
    (reducer + immutable state) and the imperative world
    (capture engine, recognizer, channels, logging).

    Guarantees:
    - Reducer is called exactly once per incoming event
    - Events are processed one at a time, in arrival order (single lock)
    - State is updated before any side effect of the same event executes
    - Platform callbacks are marshalled onto the event loop thread before
      they reach the reducer, whichever thread they fire on

    Only one live Runtime should drive the microphone per process.
    """

    def __init__(
        self,
        *,
        capture: AudioCaptureAdapter,
        recognizer: SpeechRecognizerAdapter,
        double_start_policy: DoubleStartPolicy = DoubleStartPolicy.RESTART,
        coordinator_id: str | None = None,
    ) -> None:
        self._capture = capture
        self._recognizer = recognizer
        self._state = CoordinatorState(double_start_policy=double_start_policy)
        self._coordinator_id = coordinator_id or f"coord_{uuid.uuid4().hex[:8]}"

        self.channels = CoordinatorChannels()

        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._active: _ActiveCapture | None = None
        self._start_error: SpeechRecognitionError | None = None
        self._closed = False

        self._recognizer.set_availability_handler(self._on_availability_changed)

    @property
    def state(self) -> CoordinatorState:
        """Current immutable state. Read-only for consumers."""
        return self._state

    @property
    def coordinator_id(self) -> str:
        return self._coordinator_id

    # ------------------------------------------------------------------
    # Caller commands
    # ------------------------------------------------------------------

    async def request_authorization(self) -> None:
        """The outcome arrives on the authorization channel only."""
        await self.handle_event(AuthorizationRequested(
            event_type=EventType.AUTHORIZATION_REQUESTED,
            ts_ms=_now_ms(),
        ))

    async def start_recording(self) -> bool:
        """
        Start a new session.

        Returns True when a new session reached RECORDING, False when the
        double-start policy declined to start one or after shutdown().

        Raises:
            ConfigurationError, EngineInitError, RecognizerUnavailableError
            after every partially acquired resource has been released.
        """
        self._bind_loop()
        async with self._lock:
            if self._closed:
                self._log_after_shutdown("START_REQUESTED")
                return False

            previous_run_id = self._state.run_id
            self._start_error = None

            await self._dispatch(StartRequested(
                event_type=EventType.START_REQUESTED,
                ts_ms=_now_ms(),
            ))

            error, self._start_error = self._start_error, None
            if error is not None:
                raise error

            return (
                self._state.run_id != previous_run_id
                and self._state.status is SessionStatus.RECORDING
            )

    async def stop_recording(self) -> None:
        await self.handle_event(StopRequested(
            event_type=EventType.STOP_REQUESTED,
            ts_ms=_now_ms(),
        ))

    # ------------------------------------------------------------------
    # Event pipeline
    # ------------------------------------------------------------------

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the coordination pipeline.

        This is the only entry point for events affecting state. All event
        sources converge here: caller commands, authorization results,
        availability changes, recognition callbacks.
        """
        self._bind_loop()
        async with self._lock:
            if self._closed:
                self._log_after_shutdown(event.event_type.value)
                return
            await self._dispatch(event)

    async def _dispatch(self, event: Event) -> None:
        # Caller must hold self._lock
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

    async def wait_idle(self) -> None:
        """Wait until every marshalled callback event has been processed."""
        # let call_soon_threadsafe callbacks spawn their tasks first
        await asyncio.sleep(0)
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
            await asyncio.sleep(0)

    async def shutdown(self) -> None:
        """
        Release every resource and end every stream.

        Pending callback events are cancelled. Idempotent.
        """
        async with self._lock:
            if self._closed:
                return
            self._closed = True

            active, self._active = self._active, None
            if active is not None:
                active.task.cancel()
                self._release_capture_resources()

            self._recognizer.set_availability_handler(None)
            self.channels.close_all()

        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "COORDINATOR_SHUTDOWN",
            "coordinator_id": self._coordinator_id,
            "run_id": self._state.run_id,
        })

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "coordinator_id": self._coordinator_id,
            })

        elif isinstance(cmd, RequestAuthorization):
            self._recognizer.request_authorization(self._on_authorization)

        elif isinstance(cmd, BeginCapture):
            await self._begin_capture(cmd.run_id)

        elif isinstance(cmd, EndAudio):
            active = self._active
            if active is not None and active.run_id == cmd.run_id:
                self._capture.stop()
                active.request.end_audio()

        elif isinstance(cmd, CancelRecognition):
            active = self._active
            if active is not None and active.run_id == cmd.run_id:
                active.task.cancel()

        elif isinstance(cmd, TeardownCapture):
            active = self._active
            if active is not None and active.run_id == cmd.run_id:
                self._release_capture_resources()
                self._active = None
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "CAPTURE_TEARDOWN_EXECUTED",
                    "coordinator_id": self._coordinator_id,
                    "run_id": cmd.run_id,
                })

        elif isinstance(cmd, PublishAuthorization):
            self.channels.authorization.publish(cmd.status)

        elif isinstance(cmd, PublishUtterance):
            self.channels.utterance.publish(cmd.text)

        elif isinstance(cmd, PublishStatus):
            self.channels.status.publish(cmd.status)

        elif isinstance(cmd, PublishAvailability):
            self.channels.availability.publish(cmd.available)

        else:
            raise TypeError(f"Unhandled command: {type(cmd).__name__}")

    async def _begin_capture(self, run_id: int) -> None:
        """
        Acquire session resources in order, or roll back and report.

        Order: audio session, request, recognizer, task, tap, engine.
        """
        request: RecognitionRequest | None = None
        task: RecognitionTask | None = None
        session_active = False
        tap_installed = False
        stage = "activate_session"

        def _rollback() -> None:
            if task is not None:
                task.cancel()
            if tap_installed:
                self._capture.stop()
                self._capture.remove_tap()
            if session_active:
                self._capture.deactivate_session()

        try:
            with timed(
                "session_start_latency",
                coordinator_id=self._coordinator_id,
                run_id=run_id,
            ):
                self._capture.activate_session()
                session_active = True

                stage = "new_request"
                request = self._recognizer.new_request()

                stage = "prepare_recognizer"
                await self._recognizer.prepare()

                stage = "start_task"
                task = self._recognizer.start_task(
                    request, self._result_handler(run_id)
                )

                stage = "install_tap"
                self._capture.install_tap(request.append)
                tap_installed = True

                stage = "start_engine"
                self._capture.start()
        except SpeechRecognitionError as e:
            _rollback()
            self._start_error = e
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CAPTURE_BEGIN_FAILED",
                "coordinator_id": self._coordinator_id,
                "run_id": run_id,
                "stage": stage,
                "exception": type(e).__name__,
                "message": str(e),
            })
            await self._dispatch(CaptureFailed(
                event_type=EventType.CAPTURE_FAILED,
                ts_ms=_now_ms(),
                run_id=run_id,
                reason=type(e).__name__,
            ))
            return
        except BaseException:
            # cancellation or an adapter bug: release, then propagate
            _rollback()
            raise

        self._active = _ActiveCapture(run_id=run_id, request=request, task=task)
        await self._dispatch(CaptureStarted(
            event_type=EventType.CAPTURE_STARTED,
            ts_ms=_now_ms(),
            run_id=run_id,
        ))

    def _release_capture_resources(self) -> None:
        # stop engine, remove tap, then the session
        self._capture.stop()
        self._capture.remove_tap()
        self._capture.deactivate_session()

    # ------------------------------------------------------------------
    # Platform callbacks -> events
    # ------------------------------------------------------------------

    def _result_handler(self, run_id: int) -> ResultHandler:
        """Bind a recognition callback to the session that started it."""

        def _on_result(
            result: RecognitionResult | None,
            error: BaseException | None,
        ) -> None:
            if result is not None:
                self._post(RecognitionUpdate(
                    event_type=EventType.RECOGNITION_UPDATE,
                    ts_ms=_now_ms(),
                    run_id=run_id,
                    text=result.text,
                    is_final=result.is_final,
                ))
            if error is not None or (result is not None and result.is_final):
                self._post(RecognitionEnded(
                    event_type=EventType.RECOGNITION_ENDED,
                    ts_ms=_now_ms(),
                    run_id=run_id,
                    reason=type(error).__name__ if error is not None else None,
                ))

        return _on_result

    def _on_authorization(self, status: AuthorizationStatus) -> None:
        self._post(AuthorizationResult(
            event_type=EventType.AUTHORIZATION_RESULT,
            ts_ms=_now_ms(),
            status=status,
        ))

    def _on_availability_changed(self, available: bool) -> None:
        self._post(AvailabilityChanged(
            event_type=EventType.AVAILABILITY_CHANGED,
            ts_ms=_now_ms(),
            available=available,
        ))

    # ------------------------------------------------------------------
    # Loop marshalling
    # ------------------------------------------------------------------

    def _bind_loop(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

    def _post(self, event: Event) -> None:
        """
        Schedule event processing on the loop. Safe from any thread.

        Events posted in order are processed in order.
        """
        loop = self._loop
        if loop is None or loop.is_closed() or self._closed:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CALLBACK_EVENT_DROPPED",
                "coordinator_id": self._coordinator_id,
                "dropped_event_type": event.event_type.value,
            })
            return
        loop.call_soon_threadsafe(self._spawn, event)

    def _log_after_shutdown(self, event_type: str) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "EVENT_AFTER_SHUTDOWN",
            "coordinator_id": self._coordinator_id,
            "dropped_event_type": event_type,
        })

    def _spawn(self, event: Event) -> None:
        task = asyncio.ensure_future(self.handle_event(event))
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "RUNTIME_EVENT_ERROR",
                "coordinator_id": self._coordinator_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
