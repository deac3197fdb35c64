"""
Derived "new utterance" stream.

Built on the raw utterance channel (str | None):
- None values are dropped
- a value equal to the immediately preceding EMITTED value is suppressed

The comparison is against the last emitted value only, not the whole
history, and a dropped None does not reset it. Each subscriber owns its own
de-duplication state, so every subscription starts fresh.
"""

from __future__ import annotations

from typing import Any, Callable

from streams.broadcast import Broadcast, BroadcastStream, Subscription


class UtteranceDeduplicator:
    """Per-subscriber filter state."""

    def __init__(self) -> None:
        self._last_emitted: str | None = None

    def accept(self, utterance: str | None) -> str | None:
        """Return the value to emit, or None to suppress it."""
        if utterance is None or utterance == self._last_emitted:
            return None
        self._last_emitted = utterance
        return utterance


def subscribe_new_utterances(
    channel: Broadcast[str | None],
    callback: Callable[[str], None],
) -> Subscription[str | None]:
    """Publisher surface: callback receives de-duplicated, non-None text."""
    dedup = UtteranceDeduplicator()

    def _on_utterance(utterance: str | None) -> None:
        text = dedup.accept(utterance)
        if text is not None:
            callback(text)

    return channel.subscribe(_on_utterance)


class NewUtteranceStream:
    """
    Async-stream surface over a raw utterance stream.

    Attaches eagerly (through the wrapped BroadcastStream) so no value
    published after construction is missed.
    """

    def __init__(self, source: BroadcastStream[str | None]) -> None:
        self._source = source
        self._dedup = UtteranceDeduplicator()

    def __aiter__(self) -> NewUtteranceStream:
        return self

    async def __anext__(self) -> str:
        while True:
            text = self._dedup.accept(await self._source.__anext__())
            if text is not None:
                return text

    async def aclose(self) -> None:
        await self._source.aclose()

    async def __aenter__(self) -> NewUtteranceStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def new_utterance_stream(channel: Broadcast[str | None]) -> NewUtteranceStream:
    return NewUtteranceStream(channel.stream())
