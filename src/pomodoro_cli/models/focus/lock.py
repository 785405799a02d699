"""Forced-break lock enforcement.

While a break runs with the lock enabled, the main controls are disabled
and exit gestures are swallowed. Only the emergency hotkey gets through.
The lock keeps its own one-second refresh loop, derived from the same
start time and duration the engine uses.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from .clock import Clock
from .events import EventBus, LockRefreshed
from .notifications import Notifier
from .records import SessionRecord, is_break, phase_display_name
from .scheduler import ScheduledHandle, Scheduler

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 1.0  # seconds

EMERGENCY_HOTKEY = "alt+shift+e"
BLOCKED_KEYS = frozenset({"f11", "escape", "ctrl+w", "ctrl+q", "ctrl+c"})

KeyInterceptor = Callable[[str], bool]


class InputGuard:
    """Registry of key interceptors.

    Input sources (a terminal reader, a GUI event hook) call ``dispatch`` for
    every key. An interceptor returns True to consume the key.
    """

    def __init__(self) -> None:
        self._interceptors: list[KeyInterceptor] = []

    def register(self, interceptor: KeyInterceptor) -> None:
        if interceptor not in self._interceptors:
            self._interceptors.append(interceptor)

    def unregister(self, interceptor: KeyInterceptor) -> None:
        if interceptor in self._interceptors:
            self._interceptors.remove(interceptor)

    def is_registered(self, interceptor: KeyInterceptor) -> bool:
        return interceptor in self._interceptors

    def dispatch(self, key: str) -> bool:
        """Offer *key* to the interceptors, most recent first. True if consumed."""
        key = key.lower()
        for interceptor in reversed(list(self._interceptors)):
            if interceptor(key):
                return True
        return False


@runtime_checkable
class ControlPanel(Protocol):
    """The app's start/skip controls."""

    def disable_controls(self) -> None: ...

    def enable_controls(self) -> None: ...


class LockEnforcer:
    """Blocks the app for the length of a forced break."""

    def __init__(
        self,
        clock: Clock,
        scheduler: Scheduler,
        input_guard: InputGuard,
        controls: ControlPanel | None = None,
        notifier: Notifier | None = None,
        events: EventBus | None = None,
        refresh_interval: float = REFRESH_INTERVAL,
    ):
        self.clock = clock
        self.scheduler = scheduler
        self.input_guard = input_guard
        self.controls = controls
        self.notifier = notifier
        self.events = events
        self.refresh_interval = refresh_interval

        self._locked = False
        self._break_phase: str | None = None
        self._break_start_time: int | None = None
        self._break_duration: float = 0
        self._refresh_handle: ScheduledHandle | None = None
        self._on_complete: Callable[[], None] | None = None
        self._on_emergency_stop: Callable[[], None] | None = None

    # Public getters

    @property
    def is_locked(self) -> bool:
        return self._locked

    @property
    def current_break_phase(self) -> str | None:
        return self._break_phase

    @property
    def time_remaining(self) -> float:
        """Seconds left in the break, 0 when not locked."""
        if not self._locked or self._break_start_time is None:
            return 0
        elapsed = (self.clock.now() - self._break_start_time) / 1000
        return max(0.0, self._break_duration - elapsed)

    def show_break_screen(
        self,
        phase: str,
        start_time: int,
        duration: float,
        on_complete: Callable[[], None] | None = None,
        on_emergency_stop: Callable[[], None] | None = None,
    ) -> bool:
        """Engage the lock for a break.

        Args:
            phase: ``shortBreak`` or ``longBreak``
            start_time: Break start in epoch ms (same value the engine uses)
            duration: Full break duration in seconds
            on_complete: Called when the break runs out
            on_emergency_stop: Called when the emergency hotkey is pressed

        Returns:
            False if *phase* is not a break, True once locked.
        """
        if not is_break(phase):
            logger.warning("Lock requested for non-break phase %s, ignoring", phase)
            return False

        if self._locked:
            self.force_hide()

        logger.info("Showing break screen for %s (%ss)", phase, duration)
        self._locked = True
        self._break_phase = phase
        self._break_start_time = start_time
        self._break_duration = duration
        self._on_complete = on_complete
        self._on_emergency_stop = on_emergency_stop

        self.input_guard.register(self._intercept)
        if self.controls is not None:
            self.controls.disable_controls()

        self._refresh_handle = self.scheduler.call_every(
            self.refresh_interval, self.update_break_progress
        )

        minutes = max(1, round(self.time_remaining / 60))
        self._notify(
            f"{phase_display_name(phase)} started! Take a break for {minutes} minutes.",
            "info",
        )
        return True

    def update_break_progress(self) -> None:
        """One refresh of the break display; completes the break at zero."""
        if not self._locked or self._break_start_time is None:
            logger.debug("Break refresh outside a valid break, stopping")
            self._stop_refresh()
            return

        remaining = self.time_remaining
        if self.events is not None and self._break_duration > 0:
            progress = (self._break_duration - remaining) / self._break_duration * 100
            self.events.publish(
                LockRefreshed(
                    phase=self._break_phase or "",
                    remaining=math.ceil(remaining),
                    total=self._break_duration,
                    progress=min(100.0, progress),
                )
            )

        if remaining <= 0:
            self.complete_break()

    def complete_break(self) -> None:
        """The break ran out: release the lock and hand over to the completion path."""
        if not self._locked or self._break_start_time is None:
            logger.debug("Break completion outside a valid break, ignoring")
            return

        logger.info("Break completed naturally")
        on_complete = self._on_complete
        self.hide_break_screen()
        if on_complete is not None:
            on_complete()

    def hide_break_screen(self) -> None:
        """Release the lock after a break ends normally. No-op when not locked."""
        if not self._locked:
            return
        self.force_hide()
        self._notify("Break completed! Ready for your next focus session.", "success")

    def emergency_stop(self) -> SessionRecord | None:
        """Tear the lock down unconditionally.

        Returns an interrupted record built from the lock's own timing, or
        None if no break timing was known. The caller decides whether the
        engine's own record supersedes it.
        """
        self._stop_refresh()

        record = None
        if self._break_start_time is not None:
            now = self.clock.now()
            record = SessionRecord(
                phase=self._break_phase,
                start_time=self._break_start_time,
                end_time=now,
                expected_duration=self._break_duration,
                actual_duration=max(0, (now - self._break_start_time) // 1000),
                completed=False,
                emergency_stop=True,
            )

        self.force_hide()
        logger.warning("Break interrupted by emergency stop")
        return record

    def force_hide(self) -> None:
        """Disengage regardless of current flags. Safe to call when not locked."""
        self._stop_refresh()
        self._locked = False
        self._break_phase = None
        self._break_start_time = None
        self._break_duration = 0
        self._on_complete = None
        self._on_emergency_stop = None
        self.input_guard.unregister(self._intercept)
        if self.controls is not None:
            self.controls.enable_controls()

    def _intercept(self, key: str) -> bool:
        if key == EMERGENCY_HOTKEY:
            callback = self._on_emergency_stop
            if callback is not None:
                callback()
            else:
                self.emergency_stop()
            return True

        if self._locked and key in BLOCKED_KEYS:
            logger.info("Blocked key during break: %s", key)
            return True

        return False

    def _stop_refresh(self) -> None:
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None

    def _notify(self, message: str, variant: str) -> None:
        if self.notifier is not None:
            self.notifier.notify(message, variant)
