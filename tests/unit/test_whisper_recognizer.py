# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

import numpy as np
import pytest

from adapters.speech.base import NoSpeechDetected, RecognitionRequest, RecognitionResult
from adapters.speech.whisper_engine import (
    WhisperBackendError,
    WhisperResult,
    model_supports_language,
    whisper_language_for_locale,
)
from adapters.speech.whisper_recognizer import WhisperRecognizer
from coordinator.enums.authorization import AuthorizationStatus
from errors import RecognizerUnavailableError


class FakeEngine:
    """Returns scripted texts, one per transcribe() call; the last one repeats."""

    def __init__(self, texts: list[str], *, fail: bool = False) -> None:
        self.texts = texts
        self.fail = fail
        self.calls: list[int] = []

    def transcribe(self, audio, *, sample_rate_hz=16000):  # type: ignore[no-untyped-def]
        self.calls.append(int(audio.shape[0]))
        if self.fail:
            raise WhisperBackendError("decoder crashed")
        index = min(len(self.calls) - 1, len(self.texts) - 1)
        return WhisperResult(text=self.texts[index])


class Results:
    def __init__(self) -> None:
        self.items: list[tuple[RecognitionResult | None, BaseException | None]] = []
        self.first = asyncio.Event()
        self.finished = asyncio.Event()

    def __call__(self, result, error) -> None:  # type: ignore[no-untyped-def]
        self.items.append((result, error))
        self.first.set()
        if error is not None or (result is not None and result.is_final):
            self.finished.set()


def make_recognizer(engine: FakeEngine, **kwargs) -> WhisperRecognizer:  # type: ignore[no-untyped-def]
    kwargs.setdefault("locale", "en-US")
    kwargs.setdefault("authorization_probe", lambda: AuthorizationStatus.AUTHORIZED)
    return WhisperRecognizer(
        engine_factory=lambda: engine,
        partial_interval_ms=1,
        min_partial_audio_ms=0,
        **kwargs,
    )


def one_second() -> np.ndarray:
    return np.zeros(16000, dtype=np.float32)


# ---------------------------------------------------------------------
# Locale helpers
# ---------------------------------------------------------------------

def test_locale_maps_to_primary_language():
    assert whisper_language_for_locale("en-GB") == "en"
    assert whisper_language_for_locale("pt_BR") == "pt"
    assert whisper_language_for_locale("DE") == "de"


def test_english_only_models_reject_other_languages():
    assert model_supports_language("base.en", "en")
    assert not model_supports_language("base.en", "fr")
    assert model_supports_language("base", "fr")
    assert not model_supports_language("base", "xx")


# ---------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------

def test_request_drops_frames_after_end_audio():
    request = RecognitionRequest(sample_rate_hz=16000)

    request.append(np.ones(800, dtype=np.float32))
    request.end_audio()
    request.append(np.ones(800, dtype=np.float32))

    assert request.ended
    assert request.sample_count == 800
    assert request.duration_ms() == 50
    assert request.snapshot().shape == (800,)


def test_request_rejects_non_positive_sample_rate():
    with pytest.raises(ValueError):
        RecognitionRequest(sample_rate_hz=0)


# ---------------------------------------------------------------------
# prepare / availability
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_prepare_loads_once_and_reports_available():
    loads: list[int] = []
    engine = FakeEngine(["x"])

    def factory() -> FakeEngine:
        loads.append(1)
        return engine

    recognizer = WhisperRecognizer(
        locale="en-US",
        authorization_probe=lambda: AuthorizationStatus.AUTHORIZED,
        engine_factory=factory,
    )
    changes: list[bool] = []
    recognizer.set_availability_handler(changes.append)

    assert recognizer.is_available is False
    await recognizer.prepare()
    await recognizer.prepare()

    assert loads == [1]
    assert recognizer.is_available is True
    assert changes == [True]


@pytest.mark.asyncio
async def test_unsupported_locale_is_unavailable():
    recognizer = make_recognizer(FakeEngine(["x"]), locale="fr-FR", model="base.en")

    with pytest.raises(RecognizerUnavailableError):
        await recognizer.prepare()


@pytest.mark.asyncio
async def test_model_load_failure_is_unavailable():
    def factory() -> FakeEngine:
        raise WhisperBackendError("no weights")

    recognizer = WhisperRecognizer(
        locale="en-US",
        authorization_probe=lambda: AuthorizationStatus.AUTHORIZED,
        engine_factory=factory,
    )

    with pytest.raises(RecognizerUnavailableError):
        await recognizer.prepare()
    assert recognizer.is_available is False


@pytest.mark.asyncio
async def test_start_task_before_prepare_is_unavailable():
    recognizer = make_recognizer(FakeEngine(["x"]))

    with pytest.raises(RecognizerUnavailableError):
        recognizer.start_task(recognizer.new_request(), Results())


# ---------------------------------------------------------------------
# Decode loop
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_partial_then_final_result():
    engine = FakeEngine(["hel", "hello world"])
    recognizer = make_recognizer(engine)
    await recognizer.prepare()
    results = Results()
    request = recognizer.new_request()

    recognizer.start_task(request, results)
    request.append(one_second())
    await asyncio.wait_for(results.first.wait(), timeout=2.0)
    request.end_audio()
    await asyncio.wait_for(results.finished.wait(), timeout=2.0)

    assert results.items == [
        (RecognitionResult(text="hel"), None),
        (RecognitionResult(text="hello world", is_final=True), None),
    ]
    # one partial decode, then the final over the same audio
    assert engine.calls == [16000, 16000]


@pytest.mark.asyncio
async def test_empty_final_reports_no_speech():
    recognizer = make_recognizer(FakeEngine(["  "]))
    await recognizer.prepare()
    results = Results()
    request = recognizer.new_request()

    recognizer.start_task(request, results)
    request.end_audio()
    await asyncio.wait_for(results.finished.wait(), timeout=2.0)

    [(result, error)] = results.items
    assert result is None
    assert isinstance(error, NoSpeechDetected)


@pytest.mark.asyncio
async def test_backend_error_ends_task_and_flips_availability():
    engine = FakeEngine(["x"], fail=True)
    recognizer = make_recognizer(engine)
    changes: list[bool] = []
    recognizer.set_availability_handler(changes.append)
    await recognizer.prepare()
    results = Results()
    request = recognizer.new_request()

    recognizer.start_task(request, results)
    request.end_audio()
    await asyncio.wait_for(results.finished.wait(), timeout=2.0)

    [(result, error)] = results.items
    assert result is None
    assert isinstance(error, WhisperBackendError)
    assert changes == [True, False]
    assert recognizer.is_available is False


@pytest.mark.asyncio
async def test_cancelled_task_never_reports():
    recognizer = make_recognizer(FakeEngine(["hello"]))
    await recognizer.prepare()
    results = Results()
    request = recognizer.new_request()

    task = recognizer.start_task(request, results)
    task.cancel()
    request.end_audio()
    for _ in range(10):
        await asyncio.sleep(0.005)

    assert task.cancelled
    assert task.done
    assert results.items == []


# ---------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_authorization_reports_probe_result():
    recognizer = make_recognizer(
        FakeEngine(["x"]),
        authorization_probe=lambda: AuthorizationStatus.RESTRICTED,
    )
    received: asyncio.Future[AuthorizationStatus] = asyncio.get_running_loop().create_future()

    recognizer.request_authorization(received.set_result)

    assert await asyncio.wait_for(received, timeout=2.0) is AuthorizationStatus.RESTRICTED


@pytest.mark.asyncio
async def test_authorization_probe_failure_means_denied():
    def probe() -> AuthorizationStatus:
        raise OSError("PortAudio library not found")

    recognizer = make_recognizer(FakeEngine(["x"]), authorization_probe=probe)
    received: asyncio.Future[AuthorizationStatus] = asyncio.get_running_loop().create_future()

    recognizer.request_authorization(received.set_result)

    assert await asyncio.wait_for(received, timeout=2.0) is AuthorizationStatus.DENIED


class BrokenEngine:
    def transcribe(self, audio, *, sample_rate_hz=16000):  # type: ignore[no-untyped-def]
        raise ValueError("unexpected decoder error")


@pytest.mark.asyncio
async def test_unexpected_engine_error_still_ends_task():
    recognizer = make_recognizer(BrokenEngine())  # type: ignore[arg-type]
    await recognizer.prepare()
    results = Results()
    request = recognizer.new_request()

    task = recognizer.start_task(request, results)
    request.end_audio()
    await asyncio.wait_for(results.finished.wait(), timeout=2.0)

    [(result, error)] = results.items
    assert result is None
    assert isinstance(error, ValueError)
    # the model is kept: only backend failures mark it unavailable
    assert recognizer.is_available is True
    for _ in range(5):
        await asyncio.sleep(0)
    assert task.done
