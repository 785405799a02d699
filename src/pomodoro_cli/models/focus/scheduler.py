"""Cooperative scheduling port.

Every timer in the core (engine ticks, lock refresh, auto-start of the next
phase) is a callback scheduled on one thread. The CLI backs this with the
asyncio event loop; tests back it with a manual scheduler bound to a fake
clock.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ScheduledHandle(ABC):
    """Handle returned for every scheduled callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the callback. Calling it twice is a no-op."""
        raise NotImplementedError("ScheduledHandle.cancel() must be implemented")

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        raise NotImplementedError("ScheduledHandle.cancelled must be implemented")


class Scheduler(ABC):
    """Abstract base class for single-threaded timers."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle:
        """Run *callback* once after *delay* seconds."""
        raise NotImplementedError("Scheduler.call_later() must be implemented")

    @abstractmethod
    def call_every(
        self, interval: float, callback: Callable[[], None]
    ) -> ScheduledHandle:
        """Run *callback* every *interval* seconds until cancelled."""
        raise NotImplementedError("Scheduler.call_every() must be implemented")


class _AsyncioHandle(ScheduledHandle):
    def __init__(self) -> None:
        self._timer: asyncio.TimerHandle | None = None
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """Scheduler running callbacks on an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle:
        handle = _AsyncioHandle()

        def _fire() -> None:
            if handle.cancelled:
                return
            handle._timer = None
            _run_safely(callback)

        handle._timer = self.loop.call_later(max(0.0, delay), _fire)
        return handle

    def call_every(
        self, interval: float, callback: Callable[[], None]
    ) -> ScheduledHandle:
        handle = _AsyncioHandle()

        def _fire() -> None:
            if handle.cancelled:
                return
            _run_safely(callback)
            # The callback may have cancelled its own handle.
            if not handle.cancelled:
                handle._timer = self.loop.call_later(interval, _fire)

        handle._timer = self.loop.call_later(interval, _fire)
        return handle


def _run_safely(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Unhandled exception in scheduled callback")
