"""Request versioning and cancellable delays for async coordination."""

import asyncio
from typing import Callable, Optional


class RequestVersioner:
    """
    Monotonic counter used to invalidate superseded async operations.

    Capture ``current`` when an operation is issued and check
    ``is_current`` when it completes; any ``bump`` in between makes the
    result stale.
    """

    def __init__(self, start: int = 0):
        self._value = start

    @property
    def current(self) -> int:
        return self._value

    def bump(self) -> int:
        """Advance the counter and return the new value."""
        self._value += 1
        return self._value

    def is_current(self, version: int) -> bool:
        return version == self._value


class TimerHandle:
    """Handle for a callback scheduled with ``Scheduler.schedule``."""

    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle
        self._fired = False

    def _mark_fired(self) -> None:
        self._fired = True

    @property
    def active(self) -> bool:
        return not (self._fired or self._handle.cancelled())

    def cancel(self) -> None:
        """Cancel the callback; no-op if it already fired."""
        self._handle.cancel()


class Scheduler:
    """Cancellable-delay primitive on top of the running event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` on the loop after ``delay`` seconds."""
        timer: Optional[TimerHandle] = None

        def fire() -> None:
            timer._mark_fired()
            callback()

        timer = TimerHandle(self.loop.call_later(delay, fire))
        return timer
