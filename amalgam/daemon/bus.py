"""Async event bus for in-process communication."""

import asyncio
from typing import Dict, List, Callable, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from collections import defaultdict
from loguru import logger


@dataclass
class Event:
    """Base event class."""
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.now)
    source: Optional[str] = None


class EventBus:
    """
    Async pub/sub event bus running on the daemon's event loop.

    Event types follow pattern: category.action
    Examples: clipboard.update, history.changed, search.committed, alert.raised

    Handlers run one at a time, in subscription order, on the loop thread.
    Sync handlers are called inline, so every state mutation triggered by
    an event happens in the same serialized context as user input.
    """

    def __init__(self, maxsize: int = 1000):
        self._subscribers: Dict[str, List[Callable[[Event], Any]]] = defaultdict(list)
        self._event_queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._running = False
        self._processor_task: Optional[asyncio.Task] = None
        self._stats = defaultdict(int)

    def subscribe(self, event_pattern: str, handler: Callable[[Event], Any]) -> None:
        """
        Subscribe to events matching pattern.
        Pattern can use wildcards: 'clipboard.*' matches all clipboard events.
        """
        self._subscribers[event_pattern].append(handler)
        logger.debug(f"Subscribed handler to pattern: {event_pattern}")

    def unsubscribe(self, event_pattern: str, handler: Callable[[Event], Any]) -> None:
        """Unsubscribe handler from event pattern."""
        self._subscribers[event_pattern] = [
            h for h in self._subscribers[event_pattern] if h != handler
        ]

    async def emit(self, event: Event) -> None:
        """Emit an event to the bus."""
        self.emit_nowait(event)

    def emit_nowait(self, event: Event) -> bool:
        """
        Emit an event without waiting (non-async).
        Returns True if successful, False if queue is full.
        """
        try:
            self._event_queue.put_nowait(event)
            self._stats['emitted'] += 1
            logger.debug(f"Emitted event: {event.type}")
            return True
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping event: {event.type}")
            self._stats['dropped'] += 1
            return False

    async def start(self) -> None:
        """Start the event processor."""
        if self._running:
            logger.warning("Event bus already running")
            return

        self._running = True
        self._processor_task = asyncio.create_task(self._process_events())
        logger.info("Event bus started")

    async def stop(self) -> None:
        """Stop the event processor after delivering queued events."""
        if not self._running:
            return
        await self.drain()
        self._running = False
        if self._processor_task:
            self._processor_task.cancel()
            try:
                await self._processor_task
            except asyncio.CancelledError:
                pass
            self._processor_task = None
        logger.info("Event bus stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been delivered."""
        if self._running:
            await self._event_queue.join()

    async def _process_events(self) -> None:
        """Process events from the queue."""
        while True:
            event = await self._event_queue.get()
            try:
                await self._dispatch(event)
                self._stats['processed'] += 1
            finally:
                self._event_queue.task_done()

    async def _dispatch(self, event: Event) -> None:
        handlers = []
        for pattern, subscribed in list(self._subscribers.items()):
            if self._matches_pattern(event.type, pattern):
                handlers.extend(subscribed)

        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Handler error for event {event.type}: {e}")
                self._stats['handler_errors'] += 1

    def _matches_pattern(self, event_type: str, pattern: str) -> bool:
        """Check if event type matches subscription pattern."""
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return event_type.startswith(prefix + ".")
        return event_type == pattern

    def get_stats(self) -> Dict[str, int]:
        """Get event bus statistics."""
        return dict(self._stats)
