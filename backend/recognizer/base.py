"""
SpeechRecognizer capability interface.

One interface, three concrete variants (live, test, preview). Consumers
receive a SpeechRecognizer from build_speech_recognizer() or construct a
variant explicitly; there is no global default.

Two facades over the same live channels:
- async-stream facade: `async for status in recognizer.recognition_status()`
- publisher facade: `recognizer.on_recognition_status(callback)`

Streams are live only: a consumer sees values published after it attached.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable

from coordinator.channels import CoordinatorChannels
from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.status import SessionStatus
from streams.broadcast import Subscription
from streams.utterances import new_utterance_stream, subscribe_new_utterances


class SpeechRecognizer(ABC):
    """Capability interface shared by every variant."""

    # ------------------------------------------------------------------
    # Async-stream facade
    # ------------------------------------------------------------------

    @abstractmethod
    def authorization_status(self) -> AsyncIterator[AuthorizationStatus | None]:
        raise NotImplementedError

    @abstractmethod
    def recognized_utterance(self) -> AsyncIterator[str | None]:
        raise NotImplementedError

    @abstractmethod
    def recognition_status(self) -> AsyncIterator[SessionStatus]:
        raise NotImplementedError

    @abstractmethod
    def is_recognition_available(self) -> AsyncIterator[bool]:
        raise NotImplementedError

    @abstractmethod
    def new_utterance(self) -> AsyncIterator[str]:
        """Recognized text with None dropped and repeats suppressed."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Publisher facade
    # ------------------------------------------------------------------

    @abstractmethod
    def on_authorization_status(
        self, callback: Callable[[AuthorizationStatus | None], None]
    ) -> Subscription[AuthorizationStatus | None]:
        raise NotImplementedError

    @abstractmethod
    def on_recognized_utterance(
        self, callback: Callable[[str | None], None]
    ) -> Subscription[str | None]:
        raise NotImplementedError

    @abstractmethod
    def on_recognition_status(
        self, callback: Callable[[SessionStatus], None]
    ) -> Subscription[SessionStatus]:
        raise NotImplementedError

    @abstractmethod
    def on_recognition_availability(
        self, callback: Callable[[bool], None]
    ) -> Subscription[bool]:
        raise NotImplementedError

    @abstractmethod
    def on_new_utterance(
        self, callback: Callable[[str], None]
    ) -> Subscription[str | None]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @abstractmethod
    async def request_authorization(self) -> None:
        """Trigger the consent flow. The outcome arrives on a stream."""
        raise NotImplementedError

    @abstractmethod
    async def start_recording(self) -> bool:
        """
        Start a session.

        Raises:
            ConfigurationError, EngineInitError, RecognizerUnavailableError
        """
        raise NotImplementedError

    @abstractmethod
    async def stop_recording(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def aclose(self) -> None:
        """Release resources and end every stream."""
        raise NotImplementedError


class ChannelSpeechRecognizer(SpeechRecognizer, ABC):
    """Implements both facades over a CoordinatorChannels instance."""

    @property
    @abstractmethod
    def channels(self) -> CoordinatorChannels:
        raise NotImplementedError

    def authorization_status(self) -> AsyncIterator[AuthorizationStatus | None]:
        return self.channels.authorization.stream()

    def recognized_utterance(self) -> AsyncIterator[str | None]:
        return self.channels.utterance.stream()

    def recognition_status(self) -> AsyncIterator[SessionStatus]:
        return self.channels.status.stream()

    def is_recognition_available(self) -> AsyncIterator[bool]:
        return self.channels.availability.stream()

    def new_utterance(self) -> AsyncIterator[str]:
        return new_utterance_stream(self.channels.utterance)

    def on_authorization_status(
        self, callback: Callable[[AuthorizationStatus | None], None]
    ) -> Subscription[AuthorizationStatus | None]:
        return self.channels.authorization.subscribe(callback)

    def on_recognized_utterance(
        self, callback: Callable[[str | None], None]
    ) -> Subscription[str | None]:
        return self.channels.utterance.subscribe(callback)

    def on_recognition_status(
        self, callback: Callable[[SessionStatus], None]
    ) -> Subscription[SessionStatus]:
        return self.channels.status.subscribe(callback)

    def on_recognition_availability(
        self, callback: Callable[[bool], None]
    ) -> Subscription[bool]:
        return self.channels.availability.subscribe(callback)

    def on_new_utterance(
        self, callback: Callable[[str], None]
    ) -> Subscription[str | None]:
        return subscribe_new_utterances(self.channels.utterance, callback)
