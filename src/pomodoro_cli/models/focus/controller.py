"""The focus-session controller.

Owns the app state and settings, runs sessions through the timer engine,
advances the phase cycle, persists everything and engages the break lock.
All collaborators are injected, so the whole cycle can be driven by a fake
clock and a manual scheduler.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from pydantic import ValidationError

from pomodoro_cli.errors import InvalidSettingError, SessionActiveError

from .analytics import FocusAnalytics, FocusStats, calculate_stats
from .clock import Clock, SystemClock
from .engine import TimerEngine
from .events import EventBus
from .lock import LockEnforcer
from .notifications import LoggingNotifier, Notifier, Variant
from .records import (
    AppState,
    RunningSessionSnapshot,
    SessionRecord,
    is_break,
    phase_display_name,
)
from .scheduler import AsyncioScheduler, ScheduledHandle, Scheduler
from .settings import Settings
from .state import SessionStore

logger = logging.getLogger(__name__)

AUTO_START_DELAY = 1.0  # seconds between a completion and the next phase


class FocusController:
    """Explicit context object for one Pomodoro timer."""

    def __init__(
        self,
        store: SessionStore,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        *,
        events: EventBus | None = None,
        notifier: Notifier | None = None,
        lock: LockEnforcer | None = None,
        engine: TimerEngine | None = None,
        auto_start_delay: float = AUTO_START_DELAY,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or AsyncioScheduler()
        self.events = events or EventBus()
        self.notifier = notifier or LoggingNotifier()
        self.lock = lock
        self.engine = engine or TimerEngine(self.clock, self.scheduler, self.events)
        self.auto_start_delay = auto_start_delay

        self.state: AppState = store.load_state()
        self.settings: Settings = store.load_settings()
        self._auto_start_handle: ScheduledHandle | None = None

    # State accessors

    @property
    def current_phase(self) -> str:
        return self.state.current_phase

    @property
    def current_session(self) -> int:
        return self.state.current_session

    @property
    def sessions(self) -> tuple[SessionRecord, ...]:
        return tuple(self.state.sessions)

    def is_running(self) -> bool:
        return self.engine.is_running()

    def is_locked(self) -> bool:
        return self.lock is not None and self.lock.is_locked

    def get_current_phase_duration(self) -> int:
        return self.state.cycle.get_duration(self.settings)

    # Session lifecycle

    def start(self) -> bool:
        """Start a session for the current phase. False if rejected."""
        if self.engine.is_running():
            logger.warning("Cannot start - a session is already running")
            return False
        if self.is_locked():
            logger.warning("Cannot start - controls are locked during a break")
            return False

        self.cancel_auto_start()
        phase = self.current_phase
        duration = self.get_current_phase_duration()

        started = self.engine.run_session(
            phase,
            duration,
            on_complete=self._on_session_complete,
            on_start=self._on_session_started,
        )
        if started:
            self._notify(
                f"{phase_display_name(phase)} started! "
                f"Duration: {round(duration / 60)} minutes"
            )
        return started

    def stop(self) -> SessionRecord | None:
        """Stop the running session and go back to focus.

        The stopped session is recorded as interrupted; the session index is
        kept. Rejected while the break lock is engaged.
        """
        if self.is_locked():
            logger.warning("Cannot stop - controls are locked during a break")
            return None

        self.cancel_auto_start()
        record = self.engine.clear_session("stopped")
        self.store.clear_running_session()
        if self.lock is not None:
            self.lock.force_hide()

        if record is not None:
            self.state.append_session(record)
        self._reset_to_focus()
        self._notify("Timer stopped")
        return record

    def skip(self) -> SessionRecord | None:
        """Finish the running session early and move on to the next phase."""
        if not self.engine.is_running():
            logger.warning("Cannot skip - no session is currently running")
            return None
        if self.is_locked():
            logger.warning("Cannot skip - controls are locked during a break")
            return None
        return self.engine.complete_session(skipped=True)

    def emergency_stop(self) -> SessionRecord | None:
        """Exit any state, including a forced break, and reset to focus.

        Exactly one interrupted record is added when a session (or a break
        known only to the lock) was in flight. The engine's record wins over
        the lock's own.
        """
        self.cancel_auto_start()

        lock_record = self.lock.emergency_stop() if self.lock is not None else None
        engine_record = self.engine.clear_session("emergency")
        record = engine_record or lock_record

        self.store.clear_running_session()
        if record is not None:
            self.state.append_session(record)
        self._reset_to_focus()

        self.notifier.notify(
            "Emergency stop activated! Timer reset to focus phase.", "warning"
        )
        return record

    def restore(self) -> bool:
        """Resume the session that was running when the process last exited.

        Returns True if a session was resumed. Expired snapshots are dropped
        without a record.
        """
        snapshot = self.store.load_running_session()
        if snapshot is None:
            return False

        if self.engine.is_running():
            logger.warning("Cannot restore - a session is already running")
            return False

        remaining_ms = snapshot.remaining_ms(self.clock.now())
        if remaining_ms <= 0:
            self.store.clear_running_session()
            logger.info("Found expired session, cleared it")
            return False

        self.state.cycle.current_phase = snapshot.phase
        self.store.save_state(self.state)

        resumed = self.engine.run_session(
            snapshot.phase,
            remaining_ms / 1000,
            on_complete=self._on_session_complete,
            on_start=self._on_session_started,
            start_time=snapshot.start_time,
            expected_duration=snapshot.duration,
        )
        if resumed:
            minutes = math.ceil(remaining_ms / 60000)
            self._notify(
                f"Restored {phase_display_name(snapshot.phase)} - "
                f"{minutes} minute{'s' if minutes != 1 else ''} remaining"
            )
        return resumed

    # Settings and data

    def update_settings(self, **changes: Any) -> Settings:
        """Apply setting changes. Only allowed while idle.

        Raises:
            SessionActiveError: If a session is running
            InvalidSettingError: For unknown keys or invalid values
        """
        self._require_idle("change settings")

        unknown = set(changes) - set(Settings.model_fields)
        if unknown:
            raise InvalidSettingError(f"Unknown setting: {', '.join(sorted(unknown))}")

        try:
            settings = Settings.model_validate({**self.settings.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidSettingError(str(e)) from e

        self.settings = settings
        self.store.save_settings(settings)
        return settings

    def reset_settings(self) -> Settings:
        """Restore default settings. Only allowed while idle."""
        self._require_idle("reset settings")
        self.settings = Settings()
        self.store.save_settings(self.settings)
        self._notify("Settings reset to default", "success")
        return self.settings

    def clear_all_data(self) -> None:
        """Bulk-clear history, settings and any in-flight session."""
        self.cancel_auto_start()
        self.engine.clear_session("reset")
        if self.lock is not None:
            self.lock.force_hide()

        self.store.clear_all()
        self.state.clear_sessions()
        self.state = AppState()
        self.settings = Settings()
        self._notify("All data cleared", "success")

    # Statistics

    def get_stats(self) -> FocusStats:
        return calculate_stats(self.state.sessions, now=self.clock.now())

    def analytics(self) -> FocusAnalytics:
        return FocusAnalytics(self.state.sessions, now=self.clock.now())

    # Internals

    def _on_session_started(self) -> None:
        session = self.engine.current_session
        if session is None:
            return

        self.store.save_running_session(
            RunningSessionSnapshot(
                phase=session.phase,
                duration=session.expected_duration,
                start_time=session.start_time,
                end_time=session.end_time,
            )
        )

        if is_break(session.phase) and self.settings.lock_screen_enabled:
            if self.lock is None:
                logger.info("No lock available, %s runs unlocked", session.phase)
                return
            self.lock.show_break_screen(
                session.phase,
                session.start_time,
                session.expected_duration,
                on_complete=self._on_break_expired,
                on_emergency_stop=self.emergency_stop,
            )

    def _on_break_expired(self) -> None:
        # The lock saw the break run out; finish it through the engine so the
        # record is produced exactly once.
        if self.engine.is_running():
            self.engine.tick()

    def _on_session_complete(self, record: SessionRecord) -> None:
        self.store.clear_running_session()
        self.state.append_session(record)

        finished = record.phase or self.current_phase
        next_phase = self.state.cycle.advance(self.settings)
        self.store.save_state(self.state)

        if self.lock is not None:
            self.lock.hide_break_screen()

        action = "skipped" if record.skipped else "completed"
        self._notify(
            f"{phase_display_name(finished)} {action}! "
            f"Starting {phase_display_name(next_phase)}",
            "success",
        )

        if self.settings.auto_start_next:
            self.cancel_auto_start()
            self._auto_start_handle = self.scheduler.call_later(
                self.auto_start_delay, self._auto_start
            )

    def _auto_start(self) -> None:
        self._auto_start_handle = None
        self.start()

    def cancel_auto_start(self) -> None:
        """Drop a pending auto-start of the next phase, if any."""
        if self._auto_start_handle is not None:
            self._auto_start_handle.cancel()
            self._auto_start_handle = None

    def _reset_to_focus(self) -> None:
        self.state.cycle.reset_to_focus()
        self.store.save_state(self.state)

    def _require_idle(self, action: str) -> None:
        if self.engine.is_running():
            raise SessionActiveError(f"Cannot {action} while a session is running")

    def _notify(self, message: str, variant: Variant = "info") -> None:
        if self.settings.notifications_enabled:
            self.notifier.notify(message, variant)
