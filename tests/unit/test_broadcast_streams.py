# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json

import pytest

from observability import logger
from streams.broadcast import Broadcast
from streams.utterances import (
    UtteranceDeduplicator,
    new_utterance_stream,
    subscribe_new_utterances,
)


# ---------------------------------------------------------------------
# Publisher facade
# ---------------------------------------------------------------------

def test_subscriber_sees_only_values_published_after_subscribing():
    channel: Broadcast[int] = Broadcast("numbers")
    seen: list[int] = []

    channel.publish(1)
    channel.subscribe(seen.append)
    channel.publish(2)
    channel.publish(2)

    assert seen == [2, 2]


def test_every_subscriber_receives_every_value():
    channel: Broadcast[str] = Broadcast("words")
    a: list[str] = []
    b: list[str] = []
    channel.subscribe(a.append)
    channel.subscribe(b.append)

    channel.publish("x")

    assert a == ["x"]
    assert b == ["x"]


def test_cancelled_subscription_stops_receiving():
    channel: Broadcast[int] = Broadcast("numbers")
    seen: list[int] = []

    with channel.subscribe(seen.append):
        channel.publish(1)
    channel.publish(2)

    assert seen == [1]
    assert channel.subscriber_count() == 0


def test_faulty_subscriber_does_not_break_peers(monkeypatch: pytest.MonkeyPatch):
    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)

    channel: Broadcast[int] = Broadcast("numbers")
    seen: list[int] = []

    def boom(_: int) -> None:
        raise RuntimeError("subscriber bug")

    channel.subscribe(boom)
    channel.subscribe(seen.append)
    channel.publish(1)

    assert seen == [1]
    assert json.loads(lines[0])["event_type"] == "SUBSCRIBER_ERROR"


def test_publish_after_close_is_noop():
    channel: Broadcast[int] = Broadcast("numbers")
    seen: list[int] = []
    channel.subscribe(seen.append)

    channel.close()
    channel.publish(1)

    assert seen == []
    assert channel.closed


# ---------------------------------------------------------------------
# Async-stream facade
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_stream_yields_values_in_order_until_close():
    channel: Broadcast[int] = Broadcast("numbers")
    stream = channel.stream()

    channel.publish(1)
    channel.publish(2)
    channel.close()

    assert [value async for value in stream] == [1, 2]


@pytest.mark.asyncio
async def test_stream_created_after_close_ends_immediately():
    channel: Broadcast[int] = Broadcast("numbers")
    channel.close()

    assert [value async for value in channel.stream()] == []


@pytest.mark.asyncio
async def test_aclose_detaches_stream():
    channel: Broadcast[int] = Broadcast("numbers")

    async with channel.stream():
        assert channel.subscriber_count() == 1

    assert channel.subscriber_count() == 0


@pytest.mark.asyncio
async def test_unread_stream_keeps_only_newest_values(monkeypatch: pytest.MonkeyPatch):
    lines: list[str] = []
    monkeypatch.setattr(logger, "_print", lines.append)
    monkeypatch.setattr(logger, "_json_output", True)
    channel: Broadcast[int] = Broadcast("numbers")
    stream = channel.stream(max_buffered=3)

    for value in range(6):
        channel.publish(value)
    channel.close()

    # the close marker takes the slot of the oldest value too
    assert [value async for value in stream] == [4, 5]
    dropped = [json.loads(line) for line in lines]
    assert len(dropped) == 4
    assert {d["event_type"] for d in dropped} == {"STREAM_VALUE_DROPPED"}


# ---------------------------------------------------------------------
# New utterance de-duplication
# ---------------------------------------------------------------------

def test_deduplicator_compares_with_last_emitted_value_only():
    dedup = UtteranceDeduplicator()

    emitted = [
        text
        for text in (dedup.accept(v) for v in [None, "a", "a", "a b", None, "a b"])
        if text is not None
    ]

    assert emitted == ["a", "a b"]


def test_deduplicator_allows_returning_to_an_older_value():
    dedup = UtteranceDeduplicator()

    emitted = [dedup.accept(v) for v in ["a", "b", "a"]]

    assert emitted == ["a", "b", "a"]


def test_subscribe_new_utterances_filters_none_and_repeats():
    channel: Broadcast[str | None] = Broadcast("recognized_utterance")
    seen: list[str] = []
    subscribe_new_utterances(channel, seen.append)

    for value in [None, "hel", "hello", "hello", None, "hello world"]:
        channel.publish(value)

    assert seen == ["hel", "hello", "hello world"]


def test_each_subscriber_has_its_own_dedup_state():
    channel: Broadcast[str | None] = Broadcast("recognized_utterance")
    early: list[str] = []
    late: list[str] = []

    subscribe_new_utterances(channel, early.append)
    channel.publish("hello")
    subscribe_new_utterances(channel, late.append)
    channel.publish("hello")

    assert early == ["hello"]
    assert late == ["hello"]


@pytest.mark.asyncio
async def test_new_utterance_stream_filters_none_and_repeats():
    channel: Broadcast[str | None] = Broadcast("recognized_utterance")
    stream = new_utterance_stream(channel)

    for value in [None, "a", "a", "a b", None, "a b"]:
        channel.publish(value)
    channel.close()

    received = await asyncio.wait_for(_collect(stream), timeout=1.0)
    assert received == ["a", "a b"]


async def _collect(stream) -> list[str]:  # type: ignore[no-untyped-def]
    return [text async for text in stream]
