"""
Local Whisper recognizer.

This adapter is the only recognition-layer component allowed to make
recognition decisions:
- partial decode cadence (re-decode everything buffered, rate-limited)
- final decode once end-of-audio is signalled
- locale support and model loading
- availability reporting

It must NOT:
- know about run IDs, streams or the coordinator state
- capture audio (frames arrive through RecognitionRequest.append)

Design notes:
- transcribe() is blocking; it runs in the default executor so the event
  loop never stalls.
- Partial results are best-effort. The final result covers all audio
  appended before end_audio().
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol

import numpy as np
from numpy.typing import NDArray

from adapters.speech.base import (
    AuthorizationHandler,
    AvailabilityHandler,
    NoSpeechDetected,
    RecognitionRequest,
    RecognitionResult,
    RecognitionTask,
    ResultHandler,
    SpeechRecognizerAdapter,
)
from adapters.speech.whisper_engine import (
    WhisperBackendError,
    WhisperEngine,
    WhisperResult,
    model_supports_language,
    whisper_language_for_locale,
)
from constants import (
    AUDIO_SAMPLE_RATE_HZ,
    PARTIAL_DECODE_MIN_AUDIO_MS,
    PARTIAL_DECODE_MIN_INTERVAL_MS,
)
from coordinator.enums.authorization import AuthorizationStatus
from errors import EngineInitError, RecognizerUnavailableError
from observability.metrics import timed


class TranscriptionEngine(Protocol):
    def transcribe(
        self,
        audio: NDArray[np.float32],
        *,
        sample_rate_hz: int = ...,
    ) -> WhisperResult: ...


EngineFactory = Callable[[], TranscriptionEngine]
AuthorizationProbe = Callable[[], AuthorizationStatus]


class WhisperRecognitionTask(RecognitionTask):
    """Wraps the asyncio task running the decode loop of one request."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._task.done()


class WhisperRecognizer(SpeechRecognizerAdapter):
    """
    SpeechRecognizerAdapter backed by a local Whisper model.

    The model is loaded by the first prepare() call, off the event loop.
    A backend failure during decode drops the model and reports the
    recognizer unavailable until the next successful prepare().
    """

    def __init__(
        self,
        *,
        locale: str,
        model: str = "base",
        device: str | None = None,
        compute_type: str | None = None,
        authorization_probe: AuthorizationProbe,
        engine_factory: EngineFactory | None = None,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
        partial_interval_ms: int = PARTIAL_DECODE_MIN_INTERVAL_MS,
        min_partial_audio_ms: int = PARTIAL_DECODE_MIN_AUDIO_MS,
    ) -> None:
        self._locale = locale
        self._model = model
        self._language = whisper_language_for_locale(locale)
        self._authorization_probe = authorization_probe
        self._engine_factory: EngineFactory = engine_factory or (
            lambda: WhisperEngine(
                model=model,
                device=device,
                compute_type=compute_type,
                language=self._language,
            )
        )
        self._sample_rate_hz = sample_rate_hz
        self._partial_interval_s = partial_interval_ms / 1000.0
        self._min_partial_samples = (min_partial_audio_ms * sample_rate_hz) // 1000

        self._engine: TranscriptionEngine | None = None
        self._load_lock = asyncio.Lock()
        self._available = False
        self._on_availability: AvailabilityHandler | None = None

    # ------------------------------------------------------------------
    # Authorization / availability
    # ------------------------------------------------------------------

    def request_authorization(self, on_result: AuthorizationHandler) -> None:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._authorization_probe)

        def _done(f: asyncio.Future[AuthorizationStatus]) -> None:
            if f.cancelled():
                return
            if f.exception() is not None:
                on_result(AuthorizationStatus.DENIED)
                return
            on_result(f.result())

        future.add_done_callback(_done)

    def set_availability_handler(self, on_change: AvailabilityHandler | None) -> None:
        self._on_availability = on_change

    @property
    def is_available(self) -> bool:
        return self._available

    def _set_available(self, available: bool) -> None:
        if available == self._available:
            return
        self._available = available
        if self._on_availability is not None:
            self._on_availability(available)

    # ------------------------------------------------------------------
    # Recognizer / request / task
    # ------------------------------------------------------------------

    async def prepare(self) -> None:
        if not model_supports_language(self._model, self._language):
            raise RecognizerUnavailableError(
                f"Whisper model {self._model!r} has no recognizer for "
                f"locale {self._locale!r}"
            )

        async with self._load_lock:
            if self._engine is not None:
                return
            loop = asyncio.get_running_loop()
            try:
                self._engine = await loop.run_in_executor(None, self._engine_factory)
            except WhisperBackendError as e:
                self._set_available(False)
                raise RecognizerUnavailableError(str(e)) from e
            self._set_available(True)

    def new_request(self) -> RecognitionRequest:
        try:
            return RecognitionRequest(
                sample_rate_hz=self._sample_rate_hz,
                report_partial_results=True,
            )
        except ValueError as e:
            raise EngineInitError(f"Could not build recognition request: {e}") from e

    def start_task(
        self,
        request: RecognitionRequest,
        on_result: ResultHandler,
    ) -> WhisperRecognitionTask:
        engine = self._engine
        if engine is None:
            raise RecognizerUnavailableError("Whisper model is not loaded")
        task = asyncio.get_running_loop().create_task(
            self._recognize(engine, request, on_result)
        )
        return WhisperRecognitionTask(task)

    # ------------------------------------------------------------------
    # Decode loop
    # ------------------------------------------------------------------

    async def _recognize(
        self,
        engine: TranscriptionEngine,
        request: RecognitionRequest,
        on_result: ResultHandler,
    ) -> None:
        decoded_samples = 0
        try:
            while not request.ended:
                await asyncio.sleep(self._partial_interval_s)
                if request.ended or not request.report_partial_results:
                    continue

                count = request.sample_count
                if count < self._min_partial_samples or count == decoded_samples:
                    continue

                decoded_samples = count
                text = await self._decode(engine, request.snapshot(), final=False)
                if text:
                    on_result(RecognitionResult(text=text), None)

            text = await self._decode(engine, request.snapshot(), final=True)
        except WhisperBackendError as e:
            self._engine = None
            self._set_available(False)
            on_result(None, e)
            return
        except Exception as e:  # pylint: disable=broad-exception-caught
            # CancelledError is a BaseException and still propagates
            on_result(None, e)
            return

        if not text:
            on_result(None, NoSpeechDetected("No speech detected"))
            return
        on_result(RecognitionResult(text=text, is_final=True), None)

    async def _decode(
        self,
        engine: TranscriptionEngine,
        audio: NDArray[np.float32],
        *,
        final: bool,
    ) -> str:
        loop = asyncio.get_running_loop()

        def _call() -> str:
            with timed(
                "recognition_decode_latency",
                details={"final": final, "samples": int(audio.shape[0])},
            ):
                return engine.transcribe(audio, sample_rate_hz=self._sample_rate_hz).text

        return (await loop.run_in_executor(None, _call)).strip()
