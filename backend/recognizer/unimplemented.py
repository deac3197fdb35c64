"""
Test variant: every endpoint fails loudly unless a test provides it.

Usage:
    recognizer = UnimplementedSpeechRecognizer(
        start_recording=lambda: True,
        recognition_status=lambda: fake_status_stream,
    )

An endpoint that a test exercises without overriding raises
UnimplementedEndpointError naming it. aclose() is a no-op unless overridden
so fixtures can always clean up.
"""

from __future__ import annotations

import inspect
from typing import Any, AsyncIterator, Callable

from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.status import SessionStatus
from errors import UnimplementedEndpointError
from recognizer.base import SpeechRecognizer
from streams.broadcast import Subscription


ENDPOINTS: tuple[str, ...] = (
    "authorization_status",
    "recognized_utterance",
    "recognition_status",
    "is_recognition_available",
    "new_utterance",
    "on_authorization_status",
    "on_recognized_utterance",
    "on_recognition_status",
    "on_recognition_availability",
    "on_new_utterance",
    "request_authorization",
    "start_recording",
    "stop_recording",
)


class UnimplementedSpeechRecognizer(SpeechRecognizer):
    """SpeechRecognizer whose endpoints are supplied one by one by tests."""

    def __init__(self, **overrides: Callable[..., Any]) -> None:
        unknown = set(overrides) - set(ENDPOINTS) - {"aclose"}
        if unknown:
            raise TypeError(f"Unknown SpeechRecognizer endpoints: {sorted(unknown)}")
        self._overrides = overrides

    def _endpoint(self, name: str) -> Callable[..., Any]:
        override = self._overrides.get(name)
        if override is None:
            raise UnimplementedEndpointError(name)
        return override

    async def _call_async(self, name: str, *args: Any) -> Any:
        result = self._endpoint(name)(*args)
        if inspect.isawaitable(result):
            return await result
        return result

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def authorization_status(self) -> AsyncIterator[AuthorizationStatus | None]:
        return self._endpoint("authorization_status")()

    def recognized_utterance(self) -> AsyncIterator[str | None]:
        return self._endpoint("recognized_utterance")()

    def recognition_status(self) -> AsyncIterator[SessionStatus]:
        return self._endpoint("recognition_status")()

    def is_recognition_available(self) -> AsyncIterator[bool]:
        return self._endpoint("is_recognition_available")()

    def new_utterance(self) -> AsyncIterator[str]:
        return self._endpoint("new_utterance")()

    def on_authorization_status(
        self, callback: Callable[[AuthorizationStatus | None], None]
    ) -> Subscription[AuthorizationStatus | None]:
        return self._endpoint("on_authorization_status")(callback)

    def on_recognized_utterance(
        self, callback: Callable[[str | None], None]
    ) -> Subscription[str | None]:
        return self._endpoint("on_recognized_utterance")(callback)

    def on_recognition_status(
        self, callback: Callable[[SessionStatus], None]
    ) -> Subscription[SessionStatus]:
        return self._endpoint("on_recognition_status")(callback)

    def on_recognition_availability(
        self, callback: Callable[[bool], None]
    ) -> Subscription[bool]:
        return self._endpoint("on_recognition_availability")(callback)

    def on_new_utterance(
        self, callback: Callable[[str], None]
    ) -> Subscription[str | None]:
        return self._endpoint("on_new_utterance")(callback)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def request_authorization(self) -> None:
        await self._call_async("request_authorization")

    async def start_recording(self) -> bool:
        return bool(await self._call_async("start_recording"))

    async def stop_recording(self) -> None:
        await self._call_async("stop_recording")

    async def aclose(self) -> None:
        if "aclose" in self._overrides:
            await self._call_async("aclose")
