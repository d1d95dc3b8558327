"""Tests for event bus."""

import asyncio
import pytest

from amalgam.daemon.bus import EventBus, Event


@pytest.mark.asyncio
async def test_event_emit_and_subscribe():
    """Test basic pub/sub functionality."""
    bus = EventBus()
    await bus.start()

    received_events = []

    async def handler(event: Event):
        received_events.append(event)

    bus.subscribe("clipboard.*", handler)

    await bus.emit(Event(
        type="clipboard.update",
        data={"kind": "text", "content": "hello"}
    ))
    await bus.drain()

    assert len(received_events) == 1
    assert received_events[0].type == "clipboard.update"
    assert received_events[0].data["content"] == "hello"

    await bus.stop()


@pytest.mark.asyncio
async def test_wildcard_subscription():
    """Test wildcard pattern matching."""
    bus = EventBus()
    await bus.start()

    all_events = []
    clipboard_events = []

    bus.subscribe("*", all_events.append)
    bus.subscribe("clipboard.*", clipboard_events.append)

    await bus.emit(Event(type="clipboard.update", data={}))
    await bus.emit(Event(type="search.committed", data={}))
    await bus.emit(Event(type="clipboard.update", data={}))
    await bus.drain()

    assert len(all_events) == 3
    assert len(clipboard_events) == 2

    await bus.stop()


@pytest.mark.asyncio
async def test_handlers_run_in_emit_order_on_loop_thread():
    """Sync handlers are called inline, one event at a time."""
    bus = EventBus()
    await bus.start()

    seen = []
    loop_thread = asyncio.get_running_loop()

    def handler(event: Event):
        assert asyncio.get_running_loop() is loop_thread
        seen.append(event.data["n"])

    bus.subscribe("test.*", handler)
    for n in range(20):
        bus.emit_nowait(Event(type="test.n", data={"n": n}))
    await bus.drain()

    assert seen == list(range(20))

    await bus.stop()


@pytest.mark.asyncio
async def test_handler_error_does_not_stop_delivery():
    bus = EventBus()
    await bus.start()

    received = []

    def broken(event: Event):
        raise RuntimeError("boom")

    bus.subscribe("test.*", broken)
    bus.subscribe("test.*", received.append)

    await bus.emit(Event(type="test.one", data={}))
    await bus.drain()

    assert len(received) == 1
    assert bus.get_stats()["handler_errors"] == 1

    await bus.stop()


@pytest.mark.asyncio
async def test_event_queue_full():
    """Test behavior when event queue is full."""
    bus = EventBus(maxsize=2)

    # Fill the queue before the processor runs
    await bus.emit(Event(type="test.1", data={}))
    await bus.emit(Event(type="test.2", data={}))

    # This should be dropped
    await bus.emit(Event(type="test.3", data={}))

    stats = bus.get_stats()
    assert stats['dropped'] == 1
    assert stats['emitted'] == 2

    await bus.start()
    await bus.stop()
    assert bus.get_stats()['processed'] == 2


def test_unsubscribe():
    bus = EventBus()
    handler = lambda event: None  # noqa: E731
    bus.subscribe("clipboard.update", handler)
    bus.unsubscribe("clipboard.update", handler)
    assert bus._subscribers["clipboard.update"] == []


def test_pattern_matching():
    """Test pattern matching logic."""
    bus = EventBus()

    # Exact match
    assert bus._matches_pattern("clipboard.update", "clipboard.update")
    assert not bus._matches_pattern("clipboard.update", "history.changed")

    # Wildcard
    assert bus._matches_pattern("clipboard.update", "clipboard.*")
    assert bus._matches_pattern("search.committed", "search.*")
    assert not bus._matches_pattern("clipboard.update", "search.*")

    # Global wildcard
    assert bus._matches_pattern("anything", "*")
    assert bus._matches_pattern("alert.raised", "*")
