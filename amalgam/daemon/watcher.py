"""Polls the system clipboard and publishes changes on the event bus."""

import asyncio
from typing import Optional, Tuple

from loguru import logger

from .bus import Event, EventBus
from .models import ClipboardKind
from .providers import ClipboardReader


class ClipboardWatcher:
    """
    Emits a ``clipboard.update`` event whenever clipboard content changes.

    Whatever is on the clipboard when the watcher starts is taken as the
    baseline and not reported unless ``emit_initial`` is set. Consecutive
    reads of the same content produce a single event.
    """

    def __init__(self,
                 reader: ClipboardReader,
                 event_bus: EventBus,
                 poll_interval: float = 1.0,
                 emit_initial: bool = False):
        self.reader = reader
        self.event_bus = event_bus
        self.poll_interval = poll_interval
        self.emit_initial = emit_initial
        self._last: Optional[Tuple[ClipboardKind, str]] = None
        self._task: Optional[asyncio.Task] = None
        self.events_emitted = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            logger.warning("Clipboard watcher already running")
            return

        if not self.emit_initial:
            self._last = await self._read()
        self._task = asyncio.create_task(self._poll())
        logger.info(f"Clipboard watcher started (every {self.poll_interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Clipboard watcher stopped")

    async def poll_once(self) -> bool:
        """Read the clipboard once; returns True if an event was emitted."""
        current = await self._read()
        if current is None or current == self._last:
            return False

        self._last = current
        kind, content = current
        emitted = self.event_bus.emit_nowait(Event(
            type="clipboard.update",
            data={"kind": kind.value, "content": content},
            source="clipboard_watcher"
        ))
        if emitted:
            self.events_emitted += 1
        return emitted

    async def _poll(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.poll_interval)

    async def _read(self) -> Optional[Tuple[ClipboardKind, str]]:
        try:
            return await asyncio.to_thread(self.reader.read)
        except Exception as e:
            logger.error(f"Clipboard read error: {e}")
            return None
