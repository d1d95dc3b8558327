"""Main daemon process for Amalgam."""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Callable, Optional
from datetime import datetime
import psutil
from loguru import logger

from .config import AppSettings, Config
from .bus import EventBus
from .errors import ErrorReporter
from .history import HistoryStore
from .persistence import HistoryPersistence, SettingsPersistence
from .providers import (
    ClipboardReader,
    ClipboardWriter,
    FileLocator,
    FileSystemSearchProvider,
    SystemClipboardReader,
    PyperclipWriter,
    SearchProvider,
    SystemFileLocator,
    list_scopes,
)
from .seek import SearchCoordinator
from .watcher import ClipboardWatcher


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """Log to stderr, and to a rotating file when ``log_dir`` is given."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "amalgam.log",
            rotation="1 day",
            retention="7 days",
            level="DEBUG"
        )


class AmalgamDaemon:
    """Wires the search coordinator and clipboard history to their collaborators."""

    def __init__(self,
                 config: Config,
                 provider: Optional[SearchProvider] = None,
                 reader: Optional[ClipboardReader] = None,
                 writer: Optional[ClipboardWriter] = None,
                 locator: Optional[FileLocator] = None):
        self.config = config
        self.start_time = datetime.now()

        self.event_bus = EventBus()
        self.error_reporter = ErrorReporter(self.event_bus)

        self.history_persistence = HistoryPersistence(config.history_path)
        self.settings_persistence = SettingsPersistence(config.settings_path)
        self.settings = AppSettings()

        self.scopes = list_scopes()
        self.search = SearchCoordinator(
            provider or FileSystemSearchProvider(
                max_depth=config.search.max_depth,
                max_results=config.search.max_results
            ),
            scope=self.scopes[0] if self.scopes else "",
            debounce_ms=config.search.debounce_ms,
            event_bus=self.event_bus,
            error_reporter=self.error_reporter
        )
        self.history = HistoryStore(
            capacity=config.history.capacity,
            writer=writer or PyperclipWriter(),
            locator=locator or SystemFileLocator(),
            event_bus=self.event_bus,
            error_reporter=self.error_reporter
        )
        self.watcher = ClipboardWatcher(
            reader or SystemClipboardReader(),
            self.event_bus,
            poll_interval=config.history.poll_interval
        )
        self._started = False

    async def start(self) -> None:
        """Start all daemon services."""
        logger.info("Starting Amalgam daemon...")

        await self.event_bus.start()
        self.event_bus.subscribe("clipboard.update", self.history.on_clipboard_event)

        self.settings = await self.settings_persistence.load()
        self.history.restore(await self.history_persistence.load())

        await self.watcher.start()
        self._started = True
        logger.info("Amalgam daemon started successfully")

    async def stop(self, save_history: bool = False) -> None:
        """
        Stop all daemon services.

        The history snapshot is written only when ``save_history`` is set.
        A failed save is logged and does not prevent shutdown.
        """
        if not self._started:
            return
        logger.info("Stopping Amalgam daemon...")

        await self.watcher.stop()
        await self.search.close()
        # Deliver clipboard events read before the watcher stopped.
        await self.event_bus.drain()

        if save_history:
            await self.history_persistence.save(self.history.snapshot())

        await self.event_bus.stop()
        self._started = False
        logger.info("Amalgam daemon stopped")

    async def save_settings(self, settings: AppSettings) -> bool:
        self.settings = settings
        return await self.settings_persistence.save(settings)

    def get_status(self) -> dict:
        """Get daemon status and statistics."""
        process = psutil.Process()
        uptime = (datetime.now() - self.start_time).total_seconds()
        state = self.search.current_results()

        return {
            "status": "running" if self._started else "stopped",
            "uptime": f"{uptime:.0f}s",
            "search": {
                "intent": self.search.intent.query_text,
                "scope": self.search.intent.scope,
                "version": state.version,
                "results": len(state.results),
                "in_flight": state.in_flight,
                **self.search.stats
            },
            "history": {
                "size": len(self.history),
                "capacity": self.history.capacity
            },
            "errors": self.error_reporter.get_error_summary(),
            "memory_mb": process.memory_info().rss / 1024 / 1024,
            "settings": self.settings.model_dump()
        }


async def main(config_path: Optional[str] = None,
               confirm_save: Optional[Callable[[], bool]] = None,
               on_started: Optional[Callable[[AmalgamDaemon], None]] = None) -> None:
    """
    Run the daemon until interrupted.

    On shutdown ``confirm_save`` decides whether the clipboard history is
    saved for the next start; without it nothing is saved.
    """
    try:
        config = Config.load(Path(config_path) if config_path else None)
    except FileNotFoundError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    configure_logging(config.log_level, config.log_dir)

    daemon = AmalgamDaemon(config)
    loop = asyncio.get_running_loop()
    stopping = asyncio.Event()

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}, shutting down...")
        loop.call_soon_threadsafe(stopping.set)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await daemon.start()
        if on_started is not None:
            on_started(daemon)
        await stopping.wait()
    except Exception as e:
        logger.exception(f"Daemon error: {e}")
    finally:
        save = False
        if confirm_save is not None:
            try:
                save = confirm_save()
            except (EOFError, KeyboardInterrupt):
                save = False
        await daemon.stop(save_history=save)


if __name__ == "__main__":
    asyncio.run(main())
