"""
Speech recognizer adapter contract.

This module defines the interface plus the two value objects shared by every
implementation: the recognition request (audio sink) and the task handle.

Key invariants:
- Run IDs are owned by the coordinator. Adapters never see them; the runtime
  binds each task callback to the run_id of the session that started it.
- on_result(result, error) mirrors a platform completion handler: it may be
  called any number of times with partial results, and the task is over once
  it is called with a final result or an error.
- A cancelled task never calls on_result again.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import numpy as np
from numpy.typing import NDArray

from coordinator.enums.authorization import AuthorizationStatus


# =============================================================================
# Value objects
# =============================================================================

@dataclass(frozen=True)
class RecognitionResult:
    """Best transcription so far. Replaces any earlier result of the task."""
    text: str
    is_final: bool = False


class RecognitionTaskError(Exception):
    """A recognition task ended without a usable result."""


class NoSpeechDetected(RecognitionTaskError):
    """End of audio was reached and nothing was recognized."""


ResultHandler = Callable[[RecognitionResult | None, BaseException | None], None]
AuthorizationHandler = Callable[[AuthorizationStatus], None]
AvailabilityHandler = Callable[[bool], None]


class RecognitionRequest:
    """
    Audio sink for one recognition task.

    append() is called from the capture thread, everything else from the
    event loop. Frames are kept in arrival order. After end_audio() any
    further frame is dropped silently.
    """

    def __init__(self, *, sample_rate_hz: int, report_partial_results: bool = True) -> None:
        if sample_rate_hz <= 0:
            raise ValueError(f"sample_rate_hz must be positive, got {sample_rate_hz}")
        self.sample_rate_hz = sample_rate_hz
        self.report_partial_results = report_partial_results

        self._lock = threading.Lock()
        self._frames: list[NDArray[np.float32]] = []
        self._sample_count = 0
        self._ended = False

    def append(self, frame: NDArray[np.float32]) -> None:
        with self._lock:
            if self._ended:
                return
            self._frames.append(frame)
            self._sample_count += int(frame.shape[0])

    def end_audio(self) -> None:
        with self._lock:
            self._ended = True

    @property
    def ended(self) -> bool:
        with self._lock:
            return self._ended

    @property
    def sample_count(self) -> int:
        with self._lock:
            return self._sample_count

    def duration_ms(self) -> int:
        return (self.sample_count * 1000) // self.sample_rate_hz

    def snapshot(self) -> NDArray[np.float32]:
        """All audio appended so far, as one contiguous array."""
        with self._lock:
            frames = list(self._frames)
        if not frames:
            return np.zeros((0,), dtype=np.float32)
        if len(frames) == 1:
            return frames[0]
        return np.concatenate(frames, axis=0)


class RecognitionTask(ABC):
    """Handle for a running recognition task."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the task. Idempotent. No callback fires afterwards."""
        raise NotImplementedError

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        raise NotImplementedError


# =============================================================================
# Adapter contract
# =============================================================================

class SpeechRecognizerAdapter(ABC):
    """
    Abstract interface for a speech recognition service.

    Implementations are responsible for:
    - Running the consent flow and reporting its outcome
    - Reporting service availability changes
    - Turning the audio of a RecognitionRequest into results

    Non-responsibilities:
    - No audio capture
    - No state machine logic
    - No stream publication
    """

    @abstractmethod
    def request_authorization(self, on_result: AuthorizationHandler) -> None:
        """
        Start the consent flow. on_result fires once, possibly from
        another thread, possibly after this method returned.
        """
        raise NotImplementedError

    @abstractmethod
    def set_availability_handler(self, on_change: AvailabilityHandler | None) -> None:
        """Register the callback fired whenever is_available flips."""
        raise NotImplementedError

    @property
    @abstractmethod
    def is_available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def prepare(self) -> None:
        """
        Make sure a recognizer exists for the configured locale.

        Raises:
            RecognizerUnavailableError if no recognizer can be provided.
        """
        raise NotImplementedError

    @abstractmethod
    def new_request(self) -> RecognitionRequest:
        """
        Build a fresh recognition request reporting partial results.

        Raises:
            EngineInitError if the request cannot be constructed.
        """
        raise NotImplementedError

    @abstractmethod
    def start_task(
        self,
        request: RecognitionRequest,
        on_result: ResultHandler,
    ) -> RecognitionTask:
        """Start recognizing the audio appended to request."""
        raise NotImplementedError
