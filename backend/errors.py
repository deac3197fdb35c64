"""
Error taxonomy for the speech recognition coordinator.

Only start_recording() raises the three start-time errors. Failures reported
by the recognizer mid-session are not exceptions: they end the session and
surface as SessionStatus.STOPPED.
"""

from __future__ import annotations


class SpeechRecognitionError(Exception):
    """Base exception for speech recognition errors."""


class ConfigurationError(SpeechRecognitionError):
    """The audio capture subsystem could not be configured or activated."""


class EngineInitError(SpeechRecognitionError):
    """The recognition request object could not be constructed."""


class RecognizerUnavailableError(SpeechRecognitionError):
    """No recognizer is available (e.g. unsupported locale, missing backend)."""


class UnimplementedEndpointError(SpeechRecognitionError):
    """
    Raised by the test variant when an endpoint is used without a stub.

    The message names the endpoint so the failing test points at the
    missing override.
    """

    def __init__(self, endpoint: str) -> None:
        super().__init__(f"Unimplemented: SpeechRecognizer.{endpoint}")
        self.endpoint = endpoint
