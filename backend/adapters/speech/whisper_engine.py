# pyright: reportUnknownVariableType=false
# pyright: reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false
"""
Whisper inference wrapper.

This module is deliberately "dumb":
- Accepts float32 mono audio at 16kHz
- Runs transcription
- Returns text (+ optional segment timestamps)

Must NOT:
- Know about run IDs or sessions
- Perform endpointing / silence detection
- Call recognition callbacks
- Manage timers

Implementation notes:
- Whisper is not truly streaming; "partial" results are best-effort
  re-decodes of all audio received so far.
- Supports either `faster-whisper` (preferred) or OpenAI's `whisper` package.
- Whisper is not bitwise-deterministic across executions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from constants import AUDIO_SAMPLE_RATE_HZ, WHISPER_LANGUAGE_CODES


# =============================================================================
# Public result types
# =============================================================================

@dataclass(frozen=True)
class WhisperSegment:
    """
    One timestamped segment of recognized speech.

    Times are in milliseconds relative to the start of the decoded audio.
    """
    start_ms: int
    end_ms: int
    text: str


@dataclass(frozen=True)
class WhisperResult:
    """Result of one transcription pass over a whole audio buffer."""
    text: str
    segments: tuple[WhisperSegment, ...] = ()
    duration_ms: int = 0


class WhisperBackendError(RuntimeError):
    """Raised when no Whisper backend is available or a backend call fails."""


# =============================================================================
# Locale mapping
# =============================================================================

def whisper_language_for_locale(locale: str) -> str:
    """
    Map a BCP-47 style locale ("en-GB", "pt_BR") onto a Whisper language code.

    Only the primary subtag is kept; Whisper has no regional variants.
    """
    return locale.replace("_", "-").split("-", 1)[0].strip().lower()


def model_supports_language(model: str, language: str) -> bool:
    if model.endswith(".en"):
        return language == "en"
    return language in WHISPER_LANGUAGE_CODES


# =============================================================================
# Engine
# =============================================================================

class WhisperEngine:
    """
    Minimal Whisper inference wrapper (mechanism only).

    - Synchronous; the caller runs transcribe() in an executor
    - Input is float32 mono @ AUDIO_SAMPLE_RATE_HZ (caller guarantees it)
    - Model loading happens in the constructor and may take seconds
    """

    def __init__(
        self,
        *,
        model: str = "base",
        device: str | None = None,
        compute_type: str | None = None,
        language: str | None = None,
        prefer_faster_whisper: bool = True,
    ) -> None:
        self._language = language

        self._backend_kind: str
        self._backend: Any

        if prefer_faster_whisper:
            try:
                from faster_whisper import WhisperModel  # type: ignore pylint: disable=import-outside-toplevel

                kwargs: dict[str, Any] = {}
                if device is not None:
                    kwargs["device"] = device
                if compute_type is not None:
                    kwargs["compute_type"] = compute_type

                self._backend_kind = "faster_whisper"
                self._backend = WhisperModel(model, **kwargs)
                return
            except Exception: # pylint: disable=broad-exception-caught
                pass

        try:
            import whisper  # type: ignore pylint: disable=import-outside-toplevel

            self._backend_kind = "openai_whisper"
            self._backend = whisper.load_model(model)
        except Exception as e:
            raise WhisperBackendError(
                "No Whisper backend available. Install one of:\n"
                "  - faster-whisper (preferred)\n"
                "  - openai-whisper\n"
                f"Original import error: {e!r}"
            ) from e

    @property
    def backend_kind(self) -> str:
        return self._backend_kind

    # -------------------------------------------------------------------------
    # Transcription
    # -------------------------------------------------------------------------

    def transcribe(
        self,
        audio: NDArray[np.float32],
        *,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
        prompt: str | None = None,
        temperature: float = 0.0,
    ) -> WhisperResult:
        """
        Transcribe a whole audio buffer.

        Notes:
        - Empty audio returns empty text without touching the backend
        - Blocking call (100-500ms typical for base model)
        - No VAD/endpointing applied (vad_filter=False is intentional)
        """
        if audio.size == 0:
            return WhisperResult(text="")

        duration_ms = int((audio.shape[0] / sample_rate_hz) * 1000)

        try:
            if self._backend_kind == "faster_whisper":
                text, segments = self._transcribe_faster_whisper(
                    audio=audio,
                    prompt=prompt,
                    temperature=temperature,
                )
            elif self._backend_kind == "openai_whisper":
                text, segments = self._transcribe_openai_whisper(
                    audio=audio,
                    prompt=prompt,
                    temperature=temperature,
                )
            else:
                raise WhisperBackendError(f"Unknown backend kind: {self._backend_kind}")
        except WhisperBackendError:
            raise
        except Exception as e:
            raise WhisperBackendError(f"Whisper transcription failed: {e!r}") from e

        return WhisperResult(text=text, segments=segments, duration_ms=duration_ms)

    # -------------------------------------------------------------------------
    # Backend-specific implementations
    # -------------------------------------------------------------------------

    def _transcribe_faster_whisper(
        self,
        *,
        audio: NDArray[np.float32],
        prompt: str | None,
        temperature: float,
    ) -> tuple[str, tuple[WhisperSegment, ...]]:
        kwargs: dict[str, Any] = {
            "language": self._language,
            "beam_size": 1,
            "temperature": temperature,
            "vad_filter": False,
        }
        if prompt:
            kwargs["initial_prompt"] = prompt

        segments_iter, _info = self._backend.transcribe(audio, **kwargs)

        segments: list[WhisperSegment] = []
        text_parts: list[str] = []

        for seg in segments_iter:
            seg_text = str(getattr(seg, "text", "")).strip()
            if seg_text:
                text_parts.append(seg_text)
            segments.append(WhisperSegment(
                start_ms=int(seg.start * 1000),
                end_ms=int(seg.end * 1000),
                text=seg_text,
            ))

        return " ".join(text_parts).strip(), tuple(segments)

    def _transcribe_openai_whisper(
        self,
        *,
        audio: NDArray[np.float32],
        prompt: str | None,
        temperature: float,
    ) -> tuple[str, tuple[WhisperSegment, ...]]:
        options: dict[str, Any] = {
            "language": self._language,
            "task": "transcribe",
            "temperature": temperature,
            "fp16": False,
        }
        if prompt:
            options["initial_prompt"] = prompt

        result = self._backend.transcribe(audio, **options)
        full_text = (result.get("text") or "").strip()

        segments: list[WhisperSegment] = []
        for seg in result.get("segments") or []:
            segments.append(WhisperSegment(
                start_ms=int(float(seg.get("start", 0.0)) * 1000),
                end_ms=int(float(seg.get("end", 0.0)) * 1000),
                text=(seg.get("text") or "").strip(),
            ))

        return full_text, tuple(segments)
