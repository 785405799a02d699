"""Shared test fixtures and configuration.

Provides a fake clock and a manual scheduler so the timer core can be driven
through whole Pomodoro cycles without real waiting, and isolates tests from
the real config, data and log directories.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from unittest.mock import patch

import pytest

from pomodoro_cli.models.focus.controller import FocusController
from pomodoro_cli.models.focus.events import EventBus
from pomodoro_cli.models.focus.lock import InputGuard, LockEnforcer
from pomodoro_cli.models.focus.scheduler import ScheduledHandle, Scheduler
from pomodoro_cli.models.focus.settings import Settings
from pomodoro_cli.models.focus.state import SessionStore
from pomodoro_cli.models.focus.storage import MemoryStore

# 2026-03-10 09:00:00 UTC
START_MS = 1_773_133_200_000


# ---------------------------------------------------------------------------
# Time doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: int = START_MS):
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, value: int) -> None:
        self._now = value

    def advance(self, ms: int) -> None:
        self._now += ms


class _ManualHandle(ScheduledHandle):
    def __init__(self, due: int, interval_ms: int | None, callback, seq: int):
        self.due = due
        self.interval_ms = interval_ms
        self.callback = callback
        self.seq = seq
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Scheduler that fires callbacks only while ``advance`` moves the clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._handles: list[_ManualHandle] = []
        self._seq = 0

    def _add(self, delay: float, interval: float | None, callback) -> _ManualHandle:
        self._seq += 1
        interval_ms = round(interval * 1000) if interval is not None else None
        handle = _ManualHandle(
            self.clock.now() + round(delay * 1000), interval_ms, callback, self._seq
        )
        self._handles.append(handle)
        return handle

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledHandle:
        return self._add(delay, None, callback)

    def call_every(
        self, interval: float, callback: Callable[[], None]
    ) -> ScheduledHandle:
        return self._add(interval, interval, callback)

    @property
    def pending(self) -> list[_ManualHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due callbacks in time order."""
        target = self.clock.now() + round(seconds * 1000)
        while True:
            due = [h for h in self.pending if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            if handle.due > self.clock.now():
                self.clock.set(handle.due)
            if handle.interval_ms is None:
                handle.cancel()
            else:
                handle.due += handle.interval_ms
            handle.callback()
        self.clock.set(target)
        self._handles = self.pending


class RecordingNotifier:
    """Notifier that keeps every message for assertions."""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def notify(self, message: str, variant: str = "info") -> None:
        self.messages.append((message, variant))

    def texts(self, variant: str | None = None) -> list[str]:
        return [m for m, v in self.messages if variant is None or v == variant]


class RecordingControls:
    """ControlPanel double tracking the enabled flag."""

    def __init__(self):
        self.enabled = True

    def disable_controls(self) -> None:
        self.enabled = False

    def enable_controls(self) -> None:
        self.enabled = True


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolate_environment(tmp_path, monkeypatch):
    """Keep config, state and log files inside *tmp_path*.

    Also resets the application logger so caplog sees records from every
    module, including after a command installed the file handler.
    """
    import pomodoro_cli.config as config_mod
    import pomodoro_cli.utils.logger as logger_mod

    monkeypatch.setenv("POMODORO_DATA_DIR", str(tmp_path / "data"))
    config_mod._config_manager = None

    def _reset_logger():
        app_logger = logging.getLogger("pomodoro_cli")
        for handler in list(app_logger.handlers):
            app_logger.removeHandler(handler)
            handler.close()
        app_logger.propagate = True
        logger_mod._logger = None

    _reset_logger()
    with patch(
        "pomodoro_cli.config.user_config_dir", return_value=str(tmp_path / "config")
    ):
        with patch(
            "pomodoro_cli.utils.logger.user_log_dir", return_value=str(tmp_path / "logs")
        ):
            yield
    _reset_logger()
    config_mod._config_manager = None


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def scheduler(clock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture()
def scheduler_factory(clock):
    """Fresh schedulers on the shared clock, e.g. to simulate a process restart."""
    return lambda: ManualScheduler(clock)


@pytest.fixture()
def events() -> EventBus:
    return EventBus()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def session_store(memory_store) -> SessionStore:
    return SessionStore(memory_store)


@pytest.fixture()
def guard() -> InputGuard:
    return InputGuard()


@pytest.fixture()
def controls() -> RecordingControls:
    return RecordingControls()


@pytest.fixture()
def lock(clock, scheduler, guard, controls, notifier, events) -> LockEnforcer:
    return LockEnforcer(
        clock, scheduler, guard, controls=controls, notifier=notifier, events=events
    )


@pytest.fixture()
def make_controller(session_store, clock, scheduler, events, notifier, lock):
    """Factory building a controller over the shared doubles.

    Keyword arguments are saved as settings before the controller loads them;
    ``with_lock=False`` builds it without a LockEnforcer.
    """

    def _make(with_lock: bool = True, **settings) -> FocusController:
        if settings:
            session_store.save_settings(Settings(**settings))
        return FocusController(
            session_store,
            clock,
            scheduler,
            events=events,
            notifier=notifier,
            lock=lock if with_lock else None,
        )

    return _make
