"""Statistics over the focus session history.

Everything here is a pure function of the records passed in; nothing reads
storage or mutates the history.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Literal

from .records import SessionRecord

# Slack used to classify a session as completed despite timer/display jitter.
COMPLETION_TOLERANCE_MS = 5000

# Recorded durations outside 0..MAX are treated as corrupt and left out of sums.
MAX_RECORDED_DURATION = 2 * 60 * 60

Timeframe = Literal["today", "week", "month", "all"]
TIMEFRAMES: tuple[Timeframe, ...] = ("today", "week", "month", "all")


def is_session_completed(record: SessionRecord) -> bool:
    """Classify a record as completed from its timing alone.

    A session is completed when it ended less than five seconds before its
    expected end and no more than five seconds after it. Records missing a
    start, end or expected duration are never completed.
    """
    if not record.start_time or not record.end_time or not record.expected_duration:
        return False

    expected_end = record.start_time + record.expected_duration * 1000
    early_by = expected_end - record.end_time
    return early_by < COMPLETION_TOLERANCE_MS and -early_by <= COMPLETION_TOLERANCE_MS


def _has_valid_duration(record: SessionRecord) -> bool:
    duration = record.actual_duration
    return (
        duration is not None
        and math.isfinite(duration)
        and 0 <= duration <= MAX_RECORDED_DURATION
    )


def _finite(value: float, fallback: float) -> float:
    return value if math.isfinite(value) else fallback


def _local_date(epoch_ms: int) -> datetime | None:
    """Local datetime for *epoch_ms*, or None when the platform cannot represent it."""
    try:
        return datetime.fromtimestamp(epoch_ms / 1000)
    except (ValueError, OverflowError, OSError):
        return None


def _local_day(epoch_ms: int | None) -> date | None:
    if not epoch_ms:
        return None
    started = _local_date(epoch_ms)
    return started.date() if started is not None else None


@dataclass(frozen=True)
class FocusStats:
    """Aggregate consumed by display renderers. Times are in minutes."""

    total_sessions: int = 0
    completed_sessions: int = 0
    completion_rate: float = 0
    total_focus_time: float = 0
    total_break_time: float = 0
    avg_session_length: float = 0
    avg_break_length: float = 0
    current_streak: int = 0
    longest_streak: int = 0
    todays_sessions: int = 0
    emergency_stops: int = 0
    early_stops: int = 0
    focus_efficiency: float = 100
    session_consistency: float = 100

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase aggregate external renderers expect."""
        return {_camel(key): value for key, value in asdict(self).items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def calculate_streaks(sessions: Sequence[SessionRecord]) -> tuple[int, int]:
    """Return ``(current, longest)`` runs of completed focus sessions.

    Breaks neither extend nor reset a streak; only focus sessions count.
    """
    ordered = sorted(sessions, key=lambda s: s.start_time or 0)

    longest = 0
    run = 0
    for session in ordered:
        if not session.is_focus:
            continue
        if is_session_completed(session):
            run += 1
            longest = max(longest, run)
        else:
            run = 0

    current = 0
    for session in reversed(ordered):
        if not session.is_focus:
            continue
        if not is_session_completed(session):
            break
        current += 1

    return current, longest


def calculate_focus_efficiency(sessions: Iterable[SessionRecord]) -> float:
    """Percentage of attempted focus sessions that ran to completion."""
    focus = [s for s in sessions if s.is_focus]
    if not focus:
        return 100.0
    completed = sum(1 for s in focus if is_session_completed(s))
    return completed / len(focus) * 100


def calculate_session_consistency(focus_sessions: Iterable[SessionRecord]) -> float:
    """How close completed focus sessions ran to their expected length, in percent."""
    ratios = [
        1 - abs(1 - (s.actual_duration or 0) / s.expected_duration)
        for s in focus_sessions
        if is_session_completed(s) and s.expected_duration and s.expected_duration > 0
    ]
    if not ratios:
        return 100.0
    return max(0.0, sum(ratios) / len(ratios) * 100)


def calculate_stats(
    sessions: Sequence[SessionRecord] | None, now: int | None = None
) -> FocusStats:
    """Compute all session metrics from the history.

    Args:
        sessions: Session records in completion order
        now: Current time in epoch ms, used for "today" (defaults to wall clock)

    Returns:
        A FocusStats aggregate; every value is finite
    """
    if not sessions:
        return FocusStats()

    if now is None:
        now = int(datetime.now().timestamp() * 1000)
    today = _local_day(now)

    focus_sessions = [s for s in sessions if s.is_focus]
    break_sessions = [s for s in sessions if s.is_break]
    completed = [s for s in sessions if is_session_completed(s)]

    total = len(sessions)
    completion_rate = len(completed) / total * 100

    timed = [s for s in sessions if _has_valid_duration(s)]
    focus_seconds = sum(s.actual_duration for s in timed if s.is_focus)
    break_seconds = sum(s.actual_duration for s in timed if s.is_break)

    with_duration = [s for s in timed if s.actual_duration > 0]
    breaks_with_duration = [s for s in with_duration if s.is_break]
    avg_session_length = (
        sum(s.actual_duration for s in with_duration) / len(with_duration) / 60
        if with_duration
        else 0.0
    )
    avg_break_length = (
        break_seconds / len(breaks_with_duration) / 60 if breaks_with_duration else 0.0
    )

    current_streak, longest_streak = calculate_streaks(sessions)

    todays = (
        sum(1 for s in sessions if _local_day(s.start_time) == today)
        if today is not None
        else 0
    )

    return FocusStats(
        total_sessions=total,
        completed_sessions=len(completed),
        completion_rate=_finite(completion_rate, 0),
        total_focus_time=_finite(focus_seconds / 60, 0),
        total_break_time=_finite(break_seconds / 60, 0),
        avg_session_length=_finite(avg_session_length, 0),
        avg_break_length=_finite(avg_break_length, 0),
        current_streak=current_streak,
        longest_streak=longest_streak,
        todays_sessions=todays,
        emergency_stops=sum(1 for s in sessions if s.emergency_stop),
        early_stops=total - len(completed),
        focus_efficiency=_finite(calculate_focus_efficiency(sessions), 100),
        session_consistency=_finite(calculate_session_consistency(focus_sessions), 100),
    )


def get_insights(stats: FocusStats) -> list[str]:
    """Short suggestions derived from the aggregate."""
    insights = []

    if stats.total_sessions and stats.completion_rate < 50:
        insights.append("Consider shorter sessions to improve completion rate")

    if stats.focus_efficiency < 80:
        insights.append("Try to minimize interruptions during focus sessions")

    if stats.current_streak >= 5:
        insights.append("Great streak! Keep up the momentum")

    if stats.todays_sessions == 0:
        insights.append("Start your first session today!")

    return insights


class FocusAnalytics:
    """Time-windowed views over a session history."""

    def __init__(self, sessions: Sequence[SessionRecord], now: int | None = None):
        self.sessions = list(sessions)
        self.now = now if now is not None else int(datetime.now().timestamp() * 1000)

    def _cutoff(self, timeframe: Timeframe) -> int:
        if timeframe == "today":
            started = _local_date(self.now)
            if started is not None:
                midnight = started.replace(hour=0, minute=0, second=0, microsecond=0)
                try:
                    return int(midnight.timestamp() * 1000)
                except (ValueError, OverflowError, OSError):
                    pass
            return self.now - int(timedelta(days=1).total_seconds() * 1000)
        if timeframe == "week":
            return self.now - int(timedelta(days=7).total_seconds() * 1000)
        if timeframe == "month":
            return self.now - int(timedelta(days=30).total_seconds() * 1000)
        return 0

    def filter_sessions(self, timeframe: Timeframe = "all") -> list[SessionRecord]:
        """Sessions started inside *timeframe*, in history order."""
        if timeframe not in TIMEFRAMES:
            raise ValueError(f"Unknown timeframe: {timeframe!r}")
        cutoff = self._cutoff(timeframe)
        return [s for s in self.sessions if (s.start_time or 0) >= cutoff]

    def stats(self, timeframe: Timeframe = "all") -> FocusStats:
        return calculate_stats(self.filter_sessions(timeframe), now=self.now)

    def hourly_distribution(self, timeframe: Timeframe = "all") -> list[int]:
        """Number of sessions started in each hour of the day (local time)."""
        counts = [0] * 24
        for session in self.filter_sessions(timeframe):
            started = _local_date(session.start_time) if session.start_time else None
            if started is not None:
                counts[started.hour] += 1
        return counts

    def phase_breakdown(self, timeframe: Timeframe = "all") -> dict[str, float]:
        """Minutes spent in each phase, completed sessions only."""
        minutes = {"focus": 0.0, "shortBreak": 0.0, "longBreak": 0.0}
        for session in self.filter_sessions(timeframe):
            if session.phase in minutes and is_session_completed(session):
                if _has_valid_duration(session):
                    minutes[session.phase] += session.actual_duration / 60
        return {phase: round(value, 1) for phase, value in minutes.items()}

    def focus_trend(self, timeframe: Timeframe = "all") -> dict[str, float]:
        """Completed focus minutes grouped by hour, weekday, day or month."""
        grouped: dict[str, float] = defaultdict(float)
        for session in self.filter_sessions(timeframe):
            if not session.is_focus or not is_session_completed(session):
                continue
            started = _local_date(session.start_time)
            if started is None:
                continue
            if timeframe == "today":
                key = started.strftime("%H:00")
            elif timeframe == "week":
                key = started.strftime("%Y-%m-%d %a")
            elif timeframe == "month":
                key = started.strftime("%Y-%m-%d")
            else:
                key = started.strftime("%Y-%m")
            if _has_valid_duration(session):
                grouped[key] += session.actual_duration / 60
        return {key: round(grouped[key], 1) for key in sorted(grouped)}
