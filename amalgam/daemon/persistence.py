"""JSON persistence for clipboard history and app settings."""

import json
import os
from pathlib import Path
from typing import Any, List

import aiofiles
from loguru import logger
from pydantic import ValidationError

from .config import AppSettings
from .errors import PersistenceError
from .models import ClipboardEntry


class JsonStore:
    """A single JSON document on disk, replaced atomically on write."""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def read(self) -> Any:
        """Read and decode the document; ``None`` if it does not exist."""
        if not self.path.exists():
            return None
        try:
            async with aiofiles.open(self.path, 'r', encoding='utf-8') as f:
                raw = await f.read()
            return json.loads(raw)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read {self.path}: {e}") from e

    async def write(self, data: Any) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(data, ensure_ascii=False, indent=2))
                await f.flush()
            os.replace(tmp_path, self.path)
        except (OSError, TypeError) as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e


class HistoryPersistence(JsonStore):
    """
    Stores the clipboard history snapshot as a list of
    ``{"id", "kind", "content"}`` records, most recent first.
    """

    async def load(self) -> List[ClipboardEntry]:
        """Load the saved snapshot. Any failure yields an empty history."""
        try:
            data = await self.read()
        except PersistenceError as e:
            logger.warning(f"History load failed, starting empty: {e}")
            return []

        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning(f"Ignoring malformed history file {self.path}")
            return []

        entries = []
        for record in data:
            try:
                entries.append(ClipboardEntry.from_record(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid history record: {e}")
        logger.info(f"Loaded {len(entries)} history entries from {self.path}")
        return entries

    async def save(self, entries: List[ClipboardEntry]) -> bool:
        try:
            await self.write([e.to_record() for e in entries])
        except PersistenceError as e:
            logger.error(f"History save failed: {e}")
            return False
        logger.info(f"Saved {len(entries)} history entries to {self.path}")
        return True


class SettingsPersistence(JsonStore):
    """Stores ``AppSettings`` (theme, close-to-tray)."""

    async def load(self) -> AppSettings:
        try:
            data = await self.read()
            if data is None:
                return AppSettings()
            return AppSettings.model_validate(data)
        except (PersistenceError, ValidationError) as e:
            logger.warning(f"Settings load failed, using defaults: {e}")
            return AppSettings()

    async def save(self, settings: AppSettings) -> bool:
        try:
            await self.write(settings.model_dump())
        except PersistenceError as e:
            logger.error(f"Settings save failed: {e}")
            return False
        return True
