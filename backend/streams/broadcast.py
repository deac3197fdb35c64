"""
Live broadcast channels.

One channel per observable state field. Two surfaces over the same channel:
- publisher surface: subscribe(callback) -> Subscription
- async-stream surface: stream() -> BroadcastStream (async iterator)

Semantics:
- Live only: a subscriber sees values published AFTER it subscribed.
  Nothing is replayed, nothing is buffered for future subscribers.
- Every publish() reaches every current subscriber, duplicates included.
- publish() never blocks and never raises.

Threading:
- publish(), subscribe() and stream() must be called on the event loop
  thread. Foreign-thread producers marshal onto the loop first.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Generic, TypeVar

from constants import STREAM_BUFFER_MAX_VALUES
from observability.logger import log_event

T = TypeVar("T")


class _Closed:
    """Sentinel queued into streams when the channel closes."""


_CLOSED = _Closed()


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Subscription(Generic[T]):
    """
    Handle for one callback subscriber.

    cancel() is idempotent. Usable as a context manager.
    """

    def __init__(self, channel: Broadcast[T], callback: Callable[[T], None]) -> None:
        self._channel = channel
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._channel._remove_subscription(self)  # pylint: disable=protected-access

    def _deliver(self, value: T) -> None:
        if not self._active:
            return
        try:
            self._callback(value)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            # A faulty subscriber must not break the publisher or its peers
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "SUBSCRIBER_ERROR",
                "channel": self._channel.name,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()


class BroadcastStream(Generic[T]):
    """
    Async iterator over one channel.

    Registered on construction, so values published between creation and the
    first `async for` step are not lost. Ends when the channel closes or
    aclose() is called.

    At most max_buffered values wait unconsumed; beyond that the oldest is
    dropped (logged as STREAM_VALUE_DROPPED). The close marker is always
    delivered, evicting the oldest value if needed.
    """

    def __init__(
        self,
        channel: Broadcast[T],
        max_buffered: int = STREAM_BUFFER_MAX_VALUES,
    ) -> None:
        self._channel = channel
        self._queue: asyncio.Queue[T | _Closed] = asyncio.Queue(maxsize=max_buffered)
        self._closed = False

    def _push(self, value: T | _Closed) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "STREAM_VALUE_DROPPED",
                "channel": self._channel.name,
                "max_buffered": self._queue.maxsize,
            })
        self._queue.put_nowait(value)

    def __aiter__(self) -> BroadcastStream[T]:
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if isinstance(item, _Closed):
            self._detach()
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        self._detach()

    def _detach(self) -> None:
        if not self._closed:
            self._closed = True
            self._channel._remove_stream(self)  # pylint: disable=protected-access

    async def __aenter__(self) -> BroadcastStream[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class Broadcast(Generic[T]):
    """
    Live, no-history broadcast channel.

    Publishing order is preserved per subscriber.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: list[Subscription[T]] = []
        self._streams: list[BroadcastStream[T]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._streams)

    def publish(self, value: T) -> None:
        """Deliver value to every current subscriber. No-op after close()."""
        if self._closed:
            return
        for stream in list(self._streams):
            stream._push(value)  # pylint: disable=protected-access
        for subscription in list(self._subscriptions):
            subscription._deliver(value)  # pylint: disable=protected-access

    def subscribe(self, callback: Callable[[T], None]) -> Subscription[T]:
        """Attach a callback; it receives future values only."""
        subscription = Subscription(self, callback)
        if self._closed:
            subscription.cancel()
            return subscription
        self._subscriptions.append(subscription)
        return subscription

    def stream(self, max_buffered: int = STREAM_BUFFER_MAX_VALUES) -> BroadcastStream[T]:
        """Attach a new async iterator; it yields future values only."""
        stream = BroadcastStream(self, max_buffered)
        if self._closed:
            stream._push(_CLOSED)  # pylint: disable=protected-access
        else:
            self._streams.append(stream)
        return stream

    def close(self) -> None:
        """
        End every stream and drop every callback.

        Idempotent. Used on coordinator shutdown.
        """
        if self._closed:
            return
        self._closed = True
        for stream in list(self._streams):
            stream._push(_CLOSED)  # pylint: disable=protected-access
        for subscription in list(self._subscriptions):
            subscription.cancel()
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Internal bookkeeping
    # ------------------------------------------------------------------

    def _remove_subscription(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _remove_stream(self, stream: BroadcastStream[T]) -> None:
        if stream in self._streams:
            self._streams.remove(stream)
