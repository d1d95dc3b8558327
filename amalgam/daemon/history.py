"""Bounded, deduplicated clipboard history."""

from typing import Iterable, Iterator, List, Optional, Union

import ulid
from loguru import logger

from .bus import Event, EventBus
from .errors import ErrorReporter
from .models import ClipboardEntry, ClipboardKind
from .providers import ClipboardWriter, FileLocator


class HistoryStore:
    """
    Recency-ordered log of distinct clipboard contents.

    Content is the only dedup key: ingesting content that is already
    present moves it to the front under the new kind and a fresh id. The
    collection never holds more than ``capacity`` entries; the oldest
    arrivals are dropped first.

    Copying an entry back to the clipboard does not reorder the history.
    Only new ``clipboard.update`` events do.
    """

    def __init__(self,
                 capacity: int = 50,
                 writer: Optional[ClipboardWriter] = None,
                 locator: Optional[FileLocator] = None,
                 event_bus: Optional[EventBus] = None,
                 error_reporter: Optional[ErrorReporter] = None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.writer = writer
        self.locator = locator
        self.event_bus = event_bus
        self.error_reporter = error_reporter
        self._entries: List[ClipboardEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ClipboardEntry]:
        return iter(list(self._entries))

    @property
    def entries(self) -> List[ClipboardEntry]:
        return list(self._entries)

    def ingest(self, kind: Union[ClipboardKind, str], content: str) -> Optional[ClipboardEntry]:
        """
        Record one clipboard change.

        Removes any entry with identical content, prepends the new entry
        and truncates to capacity. Empty content is ignored.
        """
        if not content:
            return None

        entry = ClipboardEntry(
            id=str(ulid.ULID()),
            kind=ClipboardKind(kind),
            content=content
        )
        remaining = [e for e in self._entries if e.content != content]
        self._entries = [entry] + remaining[:self.capacity - 1]

        logger.debug(f"Ingested {entry.kind.value} entry {entry.id} ({len(self._entries)} in history)")
        self._notify("ingest", entry)
        return entry

    def restore(self, snapshot: Iterable[ClipboardEntry]) -> None:
        """
        Replace the history with a previously saved snapshot.

        Order and ids are kept. Later duplicates of a content and entries
        beyond capacity are dropped.
        """
        seen = set()
        restored: List[ClipboardEntry] = []
        for entry in snapshot:
            if entry.content in seen:
                continue
            seen.add(entry.content)
            restored.append(entry)
            if len(restored) >= self.capacity:
                break

        self._entries = restored
        logger.info(f"Restored {len(restored)} clipboard entries")
        self._notify("restore")

    def snapshot(self) -> List[ClipboardEntry]:
        """Current history, most recent first."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries = []
        self._notify("clear")

    async def copy(self, entry: ClipboardEntry) -> bool:
        """
        Put ``entry`` back on the system clipboard.

        Folders are written as file links. Failures are reported as
        alerts and leave the history untouched.
        """
        if self.writer is None:
            logger.warning("No clipboard writer configured")
            return False

        try:
            await self.writer.write(entry.kind.writable, entry.content)
        except Exception as e:
            self._report("Copy failed", e)
            return False

        logger.debug(f"Copied entry {entry.id} to clipboard")
        return True

    async def locate(self, path: str) -> bool:
        """Reveal ``path`` in the file browser."""
        if self.locator is None:
            logger.warning("No file locator configured")
            return False

        try:
            await self.locator.locate(path)
        except Exception as e:
            self._report("Open in file browser failed", e)
            return False
        return True

    async def on_clipboard_event(self, event: Event) -> None:
        """Event bus handler for ``clipboard.update``."""
        self.ingest(event.data["kind"], event.data["content"])

    def _report(self, title: str, error: Exception) -> None:
        if self.error_reporter is not None:
            self.error_reporter.alert(title, error)
        else:
            logger.error(f"{title}: {error}")

    def _notify(self, reason: str, entry: Optional[ClipboardEntry] = None) -> None:
        if self.event_bus is None:
            return
        self.event_bus.emit_nowait(Event(
            type="history.changed",
            data={
                "reason": reason,
                "size": len(self._entries),
                "entry_id": entry.id if entry is not None else None
            },
            source="history_store"
        ))
