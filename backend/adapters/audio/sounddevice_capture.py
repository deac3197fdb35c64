# pyright: reportUnknownVariableType=false
# pyright: reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false
"""
Microphone capture via sounddevice (PortAudio).

Mechanism only:
- Opens one float32 mono input stream per session
- Forwards every captured block to the installed tap
- Reports PortAudio failures as ConfigurationError

sounddevice is imported lazily so that hosts without PortAudio can still
import this module (tests, preview deployments).
"""

from __future__ import annotations

import threading
from typing import Any

import numpy as np

from adapters.audio.base import AudioCaptureAdapter, FrameHandler
from constants import AUDIO_CHANNELS, AUDIO_SAMPLE_RATE_HZ, AUDIO_TAP_BUFFER_FRAMES
from coordinator.enums.authorization import AuthorizationStatus
from errors import ConfigurationError


def _load_sounddevice() -> Any:
    try:
        import sounddevice as sd  # type: ignore pylint: disable=import-outside-toplevel
    except (ImportError, OSError) as e:
        raise ConfigurationError(
            f"sounddevice/PortAudio is not available: {e!r}"
        ) from e
    return sd


def parse_input_device(device: str | None) -> int | str | None:
    """AUDIO_INPUT_DEVICE may hold a device index or a name substring."""
    if device is None or not device.strip():
        return None
    device = device.strip()
    return int(device) if device.isdigit() else device


def probe_input_authorization(device: str | None = None) -> AuthorizationStatus:
    """
    Map input device presence onto an authorization status.

    - AUTHORIZED: the configured (or default) input device can be queried
    - RESTRICTED: the host exposes no input device at all
    - DENIED: PortAudio is missing or refuses access to the device

    Blocking; callers run it off the event loop.
    """
    try:
        sd = _load_sounddevice()
    except ConfigurationError:
        return AuthorizationStatus.DENIED

    try:
        devices = sd.query_devices()
        if not any(int(d.get("max_input_channels", 0)) > 0 for d in devices):
            return AuthorizationStatus.RESTRICTED
        sd.query_devices(parse_input_device(device), kind="input")
    except Exception:  # pylint: disable=broad-exception-caught
        return AuthorizationStatus.DENIED

    return AuthorizationStatus.AUTHORIZED


class SoundDeviceCapture(AudioCaptureAdapter):
    """
    AudioCaptureAdapter backed by a sounddevice.InputStream.

    The stream is created by install_tap() and destroyed by remove_tap();
    start()/stop() only toggle it. The PortAudio callback thread calls the
    tap directly with a copy of the block.
    """

    def __init__(
        self,
        *,
        device: str | None = None,
        sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ,
        blocksize: int = AUDIO_TAP_BUFFER_FRAMES,
    ) -> None:
        self._device = parse_input_device(device)
        self._sample_rate_hz = sample_rate_hz
        self._blocksize = blocksize

        self._sd: Any = None
        self._stream: Any = None
        self._on_frame: FrameHandler | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def activate_session(self) -> None:
        sd = _load_sounddevice()
        try:
            sd.check_input_settings(
                device=self._device,
                channels=AUDIO_CHANNELS,
                dtype="float32",
                samplerate=self._sample_rate_hz,
            )
        except Exception as e:
            raise ConfigurationError(
                f"Input device {self._device!r} rejected capture settings: {e!r}"
            ) from e
        self._sd = sd

    def deactivate_session(self) -> None:
        self._sd = None

    # ------------------------------------------------------------------
    # Tap
    # ------------------------------------------------------------------

    def install_tap(self, on_frame: FrameHandler) -> None:
        if self._sd is None:
            raise ConfigurationError("Audio session is not active")

        with self._lock:
            self._on_frame = on_frame

        def _callback(indata: Any, _frames: int, _time_info: Any, _status: Any) -> None:
            with self._lock:
                handler = self._on_frame
            if handler is not None:
                handler(np.asarray(indata[:, 0], dtype=np.float32).copy())

        try:
            self._stream = self._sd.InputStream(
                samplerate=self._sample_rate_hz,
                channels=AUDIO_CHANNELS,
                dtype=np.float32,
                blocksize=self._blocksize,
                device=self._device,
                callback=_callback,
            )
        except Exception as e:
            with self._lock:
                self._on_frame = None
            raise ConfigurationError(f"Could not open input stream: {e!r}") from e

    def remove_tap(self) -> None:
        with self._lock:
            self._on_frame = None
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()

    # ------------------------------------------------------------------
    # Engine
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._stream is None:
            raise ConfigurationError("No tap installed")
        try:
            self._stream.start()
        except Exception as e:
            raise ConfigurationError(f"Could not start input stream: {e!r}") from e

    def stop(self) -> None:
        if self._stream is not None and self._stream.active:
            self._stream.stop()

    @property
    def is_running(self) -> bool:
        return self._stream is not None and bool(self._stream.active)
