"""Wall-clock port used for all countdown arithmetic."""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current instant, in epoch milliseconds.

    Injected into the engine, the lock and the controller so tests can
    advance time deterministically.
    """

    def now(self) -> int:
        """Return the current time in epoch milliseconds."""
        ...


class SystemClock:
    """Clock backed by the operating system's wall clock."""

    def now(self) -> int:
        return int(time.time() * 1000)
