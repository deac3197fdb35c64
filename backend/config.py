"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No coordination logic
- No behavioral constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import DEFAULT_RECOGNIZER_LOCALE
from coordinator.enums.policy import DoubleStartPolicy
from recognizer.variant import RecognizerVariant


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the recognizer factory and the server.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Recognizer binding
    # ------------------------------------------------------------------

    recognizer_variant: RecognizerVariant = RecognizerVariant.PREVIEW
    recognizer_locale: str = DEFAULT_RECOGNIZER_LOCALE
    double_start_policy: DoubleStartPolicy = DoubleStartPolicy.RESTART

    # ------------------------------------------------------------------
    # Whisper (live variant)
    # ------------------------------------------------------------------

    whisper_model: str = "base"
    whisper_device: str | None = None
    whisper_compute_type: str | None = None

    # ------------------------------------------------------------------
    # Audio capture (live variant)
    # ------------------------------------------------------------------

    # sounddevice device index or name substring; None = system default
    audio_input_device: str | None = None

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if an enumerated variable holds an unknown value.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            recognizer_variant=RecognizerVariant(
                os.environ.get("RECOGNIZER_VARIANT", "preview").lower()
            ),
            recognizer_locale=os.environ.get(
                "RECOGNIZER_LOCALE", DEFAULT_RECOGNIZER_LOCALE
            ),
            double_start_policy=DoubleStartPolicy(
                os.environ.get("DOUBLE_START_POLICY", "restart").lower()
            ),

            whisper_model=os.environ.get("WHISPER_MODEL", "base"),
            whisper_device=os.environ.get("WHISPER_DEVICE"),
            whisper_compute_type=os.environ.get("WHISPER_COMPUTE_TYPE"),

            audio_input_device=os.environ.get("AUDIO_INPUT_DEVICE"),
        )
