"""Typed events published by the timer core, and the bus that delivers them.

Delivery is synchronous, on the caller's thread, in subscription order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from .records import SessionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionStarted:
    phase: str
    duration: float
    start_time: int
    end_time: int


@dataclass(frozen=True)
class SessionTicked:
    """Progress of the running countdown; both values in seconds."""

    phase: str
    remaining: int
    total: float


@dataclass(frozen=True)
class SessionCompleted:
    """A session finished naturally or was skipped."""

    record: SessionRecord


@dataclass(frozen=True)
class SessionInterrupted:
    """A session was stopped, emergency-stopped or reset."""

    record: SessionRecord
    reason: str


@dataclass(frozen=True)
class LockRefreshed:
    """Display refresh of the forced-break lock."""

    phase: str
    remaining: int
    total: float
    progress: float  # percent, 0..100


E = TypeVar("E")
Handler = Callable[[Any], None]


class EventBus:
    """Synchronous observer registry keyed by event type."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        if not callable(handler):
            raise ValueError("Handler must be callable")
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: object) -> None:
        """Deliver *event* to its subscribers; a failing handler is logged and skipped."""
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception:
                logger.exception("Error in %s handler", type(event).__name__)
