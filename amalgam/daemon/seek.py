"""Debounced, version-gated coordination of live file-name searches."""

import asyncio
from dataclasses import replace
from typing import Dict, Optional, Set, Tuple

from loguru import logger

from .bus import Event, EventBus
from .errors import ErrorReporter, ErrorSeverity
from .models import FileMatch, SearchIntent, SearchState
from .providers import SearchProvider
from .versioning import RequestVersioner, Scheduler, TimerHandle


class SearchCoordinator:
    """
    Turns a stream of intent changes into a stream of result-set updates.

    Every ``update_intent`` call takes effect at once, bumps the request
    version and restarts the debounce timer. When the timer fires the
    provider is called with the intent as it stands then. A response
    commits only if no newer intent has arrived since it was dispatched,
    so the visible results always belong to the last settled intent.

    All methods must be called from the event loop thread.
    """

    def __init__(self,
                 provider: SearchProvider,
                 scope: str = "",
                 debounce_ms: int = 300,
                 event_bus: Optional[EventBus] = None,
                 error_reporter: Optional[ErrorReporter] = None,
                 scheduler: Optional[Scheduler] = None):
        self.provider = provider
        self.debounce_s = debounce_ms / 1000
        self.event_bus = event_bus
        self.error_reporter = error_reporter

        self._intent = SearchIntent(scope=scope)
        self._versioner = RequestVersioner()
        self._scheduler = scheduler or Scheduler()
        self._timer: Optional[TimerHandle] = None

        self._results: Tuple[FileMatch, ...] = ()
        self._in_flight = False
        self._tasks: Set[asyncio.Task] = set()
        self._settled = asyncio.Event()
        self._settled.set()

        self.stats: Dict[str, int] = {
            "dispatched": 0,
            "committed": 0,
            "discarded": 0,
            "failed": 0,
            "short_circuited": 0
        }

    @property
    def intent(self) -> SearchIntent:
        return self._intent

    @property
    def version(self) -> int:
        return self._versioner.current

    def update_intent(self,
                      query: Optional[str] = None,
                      scope: Optional[str] = None,
                      case_sensitive: Optional[bool] = None,
                      use_regex: Optional[bool] = None) -> int:
        """
        Apply a change to the search intent and reschedule evaluation.

        Fields left as ``None`` keep their current value. Scope and option
        changes are full intent changes, same as text edits.

        Returns:
            The new request version
        """
        changes = {}
        if query is not None:
            changes["query_text"] = query
        if scope is not None:
            changes["scope"] = scope
        if case_sensitive is not None:
            changes["case_sensitive"] = case_sensitive
        if use_regex is not None:
            changes["use_regex"] = use_regex
        self._intent = replace(self._intent, **changes)

        # Bump before the delay so in-flight responses are stale right away.
        version = self._versioner.bump()
        self._settled.clear()

        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._scheduler.schedule(self.debounce_s, self._on_debounce_expired)

        logger.debug(f"Search intent v{version}: {self._intent}")
        return version

    def current_results(self) -> SearchState:
        """Last committed result set and whether a live request is running."""
        return SearchState(
            results=self._results,
            in_flight=self._in_flight,
            version=self._versioner.current
        )

    async def settle(self) -> SearchState:
        """Wait until the latest intent has been committed."""
        while not self._settled.is_set():
            await self._settled.wait()
        return self.current_results()

    async def close(self) -> None:
        """Cancel the pending timer and any outstanding provider calls."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight = False
        self._settled.set()

    def _on_debounce_expired(self) -> None:
        self._timer = None
        intent = self._intent
        version = self._versioner.current

        if intent.is_blank:
            self.stats["short_circuited"] += 1
            self._commit(version, intent, ())
            return

        self._in_flight = True
        self.stats["dispatched"] += 1
        task = asyncio.create_task(self._run(version, intent))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, version: int, intent: SearchIntent) -> None:
        results: Tuple[FileMatch, ...] = ()
        try:
            matches = await self.provider.search_files(
                intent.query_text.strip(),
                intent.scope,
                intent.use_regex,
                intent.case_sensitive
            )
            results = tuple(matches)
        except Exception as e:
            self.stats["failed"] += 1
            logger.error(f"Search failed for {intent.query_text!r} in {intent.scope!r}: {e}")
            if self.error_reporter is not None:
                self.error_reporter.record(
                    "search", e, ErrorSeverity.LOW,
                    query=intent.query_text, scope=intent.scope
                )

        if not self._versioner.is_current(version):
            self.stats["discarded"] += 1
            logger.debug(f"Discarding stale search v{version} (current v{self.version})")
            return

        self._commit(version, intent, results)

    def _commit(self, version: int, intent: SearchIntent, results: Tuple[FileMatch, ...]) -> None:
        self._results = results
        self._in_flight = False
        self._settled.set()
        self.stats["committed"] += 1

        if self.event_bus is not None:
            self.event_bus.emit_nowait(Event(
                type="search.committed",
                data={
                    "version": version,
                    "query": intent.query_text,
                    "scope": intent.scope,
                    "count": len(results)
                },
                source="search_coordinator"
            ))
