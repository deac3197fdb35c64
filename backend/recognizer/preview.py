"""
Preview variant: scripted, deterministic, no hardware.

Used for demos and UI development. Timing follows constants.PREVIEW_*; every
delay can be overridden (tests pass 0).
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Callable, Coroutine, Sequence

from constants import (
    PREVIEW_AUTHORIZATION_DELAY_S,
    PREVIEW_STOP_DELAY_S,
    PREVIEW_WORD_DELAY_PER_CHAR_S,
    PREVIEW_WORDS,
)
from coordinator.channels import CoordinatorChannels
from coordinator.enums.authorization import AuthorizationStatus
from coordinator.enums.status import SessionStatus
from recognizer.base import ChannelSpeechRecognizer
from streams.broadcast import Subscription


class PreviewSpeechRecognizer(ChannelSpeechRecognizer):
    """
    Scripted recognizer.

    - request_authorization(): AUTHORIZED after the authorization delay
    - start_recording(): None, RECORDING, then the script one word at a time
    - stop_recording(): script cancelled, STOPPING, STOPPED after the stop delay
    - availability: always True
    """

    def __init__(
        self,
        *,
        words: Sequence[str] = PREVIEW_WORDS,
        authorization_delay_s: float = PREVIEW_AUTHORIZATION_DELAY_S,
        word_delay_per_char_s: float = PREVIEW_WORD_DELAY_PER_CHAR_S,
        stop_delay_s: float = PREVIEW_STOP_DELAY_S,
    ) -> None:
        self._channels = CoordinatorChannels()
        self._words = tuple(words)
        self._authorization_delay_s = authorization_delay_s
        self._word_delay_per_char_s = word_delay_per_char_s
        self._stop_delay_s = stop_delay_s

        self._script_task: asyncio.Task[None] | None = None
        self._stop_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def channels(self) -> CoordinatorChannels:
        return self._channels

    # ------------------------------------------------------------------
    # Availability is constant
    # ------------------------------------------------------------------

    def is_recognition_available(self) -> AsyncIterator[bool]:
        return self._always_available(self._channels.availability.stream())

    @staticmethod
    async def _always_available(source: AsyncIterator[bool]) -> AsyncIterator[bool]:
        yield True
        async for value in source:
            yield value

    def on_recognition_availability(
        self, callback: Callable[[bool], None]
    ) -> Subscription[bool]:
        subscription = self._channels.availability.subscribe(callback)
        callback(True)
        return subscription

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def request_authorization(self) -> None:
        self._spawn(self._authorize())

    async def start_recording(self) -> bool:
        self._cancel(self._script_task)
        self._cancel(self._stop_task)
        self._stop_task = None

        self._channels.utterance.publish(None)
        self._channels.status.publish(SessionStatus.RECORDING)
        self._script_task = self._spawn(self._play_script())
        return True

    async def stop_recording(self) -> None:
        self._cancel(self._script_task)
        self._script_task = None

        self._channels.status.publish(SessionStatus.STOPPING)
        self._cancel(self._stop_task)
        self._stop_task = self._spawn(self._finish_stop())

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._channels.close_all()

    # ------------------------------------------------------------------
    # Scripted behavior
    # ------------------------------------------------------------------

    async def _authorize(self) -> None:
        await asyncio.sleep(self._authorization_delay_s)
        self._channels.authorization.publish(AuthorizationStatus.AUTHORIZED)

    async def _play_script(self) -> None:
        utterance: str | None = None
        for word in self._words:
            await asyncio.sleep(self._word_delay_per_char_s * len(word))
            utterance = word if utterance is None else f"{utterance} {word}"
            self._channels.utterance.publish(utterance)

    async def _finish_stop(self) -> None:
        await asyncio.sleep(self._stop_delay_s)
        self._channels.status.publish(SessionStatus.STOPPED)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    def _cancel(task: asyncio.Task[None] | None) -> None:
        if task is not None and not task.done():
            task.cancel()
