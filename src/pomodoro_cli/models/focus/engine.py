"""Drift-corrected countdown engine.

The engine never decrements a counter. It stores the end timestamp and
recomputes the remaining time from the clock on every tick, so missed
ticks (a suspended process, a slow restart) do not skew the countdown.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace

from .analytics import is_session_completed
from .clock import Clock
from .events import (
    EventBus,
    SessionCompleted,
    SessionInterrupted,
    SessionStarted,
    SessionTicked,
)
from .records import SessionRecord
from .scheduler import ScheduledHandle, Scheduler

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.1  # seconds

CompletionCallback = Callable[[SessionRecord], None]


@dataclass
class ActiveSession:
    """The countdown currently owned by the engine."""

    phase: str
    duration: float  # seconds counted down by this run
    expected_duration: float  # seconds of the full session, survives restores
    start_time: int  # epoch ms
    end_time: int  # epoch ms
    on_complete: CompletionCallback | None = None

    def remaining_ms(self, now: int) -> int:
        return max(0, self.end_time - now)

    def elapsed_seconds(self, now: int) -> int:
        return max(0, (now - self.start_time) // 1000)


class TimerEngine:
    """Runs one countdown at a time and turns its end into a SessionRecord."""

    def __init__(
        self,
        clock: Clock,
        scheduler: Scheduler,
        events: EventBus | None = None,
        tick_interval: float = TICK_INTERVAL,
    ):
        self.clock = clock
        self.scheduler = scheduler
        self.events = events or EventBus()
        self.tick_interval = tick_interval
        self._session: ActiveSession | None = None
        self._tick_handle: ScheduledHandle | None = None

    @property
    def current_session(self) -> ActiveSession | None:
        return self._session

    def is_running(self) -> bool:
        return self._session is not None

    def run_session(
        self,
        phase: str,
        duration: float,
        on_complete: CompletionCallback | None = None,
        on_start: Callable[[], None] | None = None,
        *,
        start_time: int | None = None,
        expected_duration: float | None = None,
    ) -> bool:
        """
        Start a countdown of *duration* seconds.

        Args:
            phase: Phase being timed
            duration: Seconds to count down from now
            on_complete: Called with the record when the session completes or is skipped
            on_start: Called once, synchronously, before the first tick
            start_time: Original start (epoch ms) when resuming a restored session
            expected_duration: Original full duration when resuming a restored session

        Returns:
            False (with a warning) if a session is already running or the
            duration is not positive, True otherwise.
        """
        if self._session is not None:
            logger.warning(
                "Cannot start %s: a %s session is already running",
                phase,
                self._session.phase,
            )
            return False

        if not duration or duration <= 0 or not math.isfinite(duration):
            logger.warning("Cannot start %s with duration %r", phase, duration)
            return False

        now = self.clock.now()
        self._session = ActiveSession(
            phase=phase,
            duration=duration,
            expected_duration=expected_duration if expected_duration else duration,
            start_time=start_time if start_time is not None else now,
            end_time=now + round(duration * 1000),
            on_complete=on_complete,
        )
        session = self._session
        logger.info("Timer started: %s for %ss", phase, duration)

        self.events.publish(
            SessionStarted(
                phase=phase,
                duration=session.expected_duration,
                start_time=session.start_time,
                end_time=session.end_time,
            )
        )

        if on_start is not None:
            try:
                on_start()
            except Exception:
                logger.exception("Error in on_start callback for %s", phase)

        # on_start may have ended the session already (emergency stop, reset).
        if self._session is session:
            self._tick_handle = self.scheduler.call_every(self.tick_interval, self.tick)
            self.tick()
        return True

    def tick(self) -> None:
        """Recompute the remaining time and finalize the session at zero."""
        session = self._session
        if session is None:
            return

        remaining_ms = session.remaining_ms(self.clock.now())
        self.events.publish(
            SessionTicked(
                phase=session.phase,
                remaining=math.ceil(remaining_ms / 1000),
                total=session.expected_duration,
            )
        )

        if remaining_ms <= 0 and self._session is session:
            # The countdown reached zero at the scheduled end, however late
            # this tick fired.
            self._finalize(session, end_time=session.end_time, skipped=False)

    def get_remaining_time(self) -> int:
        """Remaining seconds (rounded up), or 0 if idle."""
        if self._session is None:
            return 0
        return math.ceil(self._session.remaining_ms(self.clock.now()) / 1000)

    def get_elapsed_time(self) -> int:
        """Whole seconds since the session started, or 0 if idle."""
        if self._session is None:
            return 0
        return self._session.elapsed_seconds(self.clock.now())

    def complete_session(self, skipped: bool = True) -> SessionRecord | None:
        """Finish the running session now, e.g. because the user skipped it.

        ``completed`` on the record comes from timing, not from the skip flag.
        """
        session = self._session
        if session is None:
            logger.warning("Cannot complete - no session is currently running")
            return None
        return self._finalize(session, end_time=self.clock.now(), skipped=skipped)

    def clear_session(self, reason: str = "stopped") -> SessionRecord | None:
        """Abort the running session without calling ``on_complete``.

        Returns the interrupted record, or None when nothing was running.
        """
        session = self._session
        if session is None:
            return None

        self._stop_ticking()
        self._session = None

        end_time = self.clock.now()
        record = SessionRecord(
            phase=session.phase,
            start_time=session.start_time,
            end_time=end_time,
            expected_duration=session.expected_duration,
            actual_duration=max(0, (end_time - session.start_time) // 1000),
            completed=False,
            skipped=False,
            emergency_stop=reason == "emergency",
        )
        logger.info("Timer cleared: %s (%s)", session.phase, reason)
        self.events.publish(SessionInterrupted(record=record, reason=reason))
        return record

    def _finalize(
        self, session: ActiveSession, end_time: int, skipped: bool
    ) -> SessionRecord:
        self._stop_ticking()
        self._session = None

        draft = SessionRecord(
            phase=session.phase,
            start_time=session.start_time,
            end_time=end_time,
            expected_duration=session.expected_duration,
            actual_duration=max(0, (end_time - session.start_time) // 1000),
            skipped=skipped,
        )
        record = replace(draft, completed=is_session_completed(draft))
        logger.info(
            "Session %s: %s, duration: %ss",
            "skipped" if skipped else "completed",
            session.phase,
            record.actual_duration,
        )

        self.events.publish(SessionCompleted(record=record))
        if session.on_complete is not None:
            try:
                session.on_complete(record)
            except Exception:
                logger.exception("Error in on_complete callback for %s", session.phase)
        return record

    def _stop_ticking(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None
