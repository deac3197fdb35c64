"""
Live variant: coordinator runtime over real capture and recognition.
"""

from __future__ import annotations

from functools import partial

from adapters.audio.base import AudioCaptureAdapter
from adapters.audio.sounddevice_capture import SoundDeviceCapture, probe_input_authorization
from adapters.speech.base import SpeechRecognizerAdapter
from adapters.speech.whisper_recognizer import WhisperRecognizer
from config import AppConfig
from coordinator.channels import CoordinatorChannels
from coordinator.enums.policy import DoubleStartPolicy
from coordinator.runtime import Runtime
from recognizer.base import ChannelSpeechRecognizer


class LiveSpeechRecognizer(ChannelSpeechRecognizer):
    """
    SpeechRecognizer driven by a coordinator Runtime.

    Adapters are injectable; from_config() wires the host microphone
    (sounddevice) and a local Whisper model.
    """

    def __init__(
        self,
        *,
        capture: AudioCaptureAdapter,
        recognizer: SpeechRecognizerAdapter,
        double_start_policy: DoubleStartPolicy = DoubleStartPolicy.RESTART,
        coordinator_id: str | None = None,
    ) -> None:
        self._runtime = Runtime(
            capture=capture,
            recognizer=recognizer,
            double_start_policy=double_start_policy,
            coordinator_id=coordinator_id,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> LiveSpeechRecognizer:
        return cls(
            capture=SoundDeviceCapture(device=config.audio_input_device),
            recognizer=WhisperRecognizer(
                locale=config.recognizer_locale,
                model=config.whisper_model,
                device=config.whisper_device,
                compute_type=config.whisper_compute_type,
                authorization_probe=partial(
                    probe_input_authorization, config.audio_input_device
                ),
            ),
            double_start_policy=config.double_start_policy,
        )

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def channels(self) -> CoordinatorChannels:
        return self._runtime.channels

    async def request_authorization(self) -> None:
        await self._runtime.request_authorization()

    async def start_recording(self) -> bool:
        return await self._runtime.start_recording()

    async def stop_recording(self) -> None:
        await self._runtime.stop_recording()

    async def aclose(self) -> None:
        await self._runtime.shutdown()
