"""Session records, the running-session snapshot and the persisted app state."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from .cycling import PHASES, PhaseCycle

BREAK_PHASES: frozenset[str] = frozenset({"shortBreak", "longBreak"})

PHASE_DISPLAY_NAMES = {
    "focus": "Focus",
    "shortBreak": "Short Break",
    "longBreak": "Long Break",
}


def is_break(phase: str | None) -> bool:
    """Return True for ``shortBreak`` and ``longBreak``."""
    return phase in BREAK_PHASES


def phase_display_name(phase: str | None) -> str:
    return PHASE_DISPLAY_NAMES.get(phase or "", "Break Time")


def _optional_int(value: Any) -> int | None:
    number = _optional_number(value)
    return int(number) if number is not None else None


def _optional_number(value: Any) -> float | None:
    """A finite number from stored JSON, else None (json accepts NaN and Infinity)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        finite = math.isfinite(value)
    except OverflowError:
        return None
    return value if finite else None


@dataclass(frozen=True)
class SessionRecord:
    """One finished run of a phase's countdown.

    Created only when a session ends (naturally, by skip, by stop or by
    emergency stop) and never modified afterwards. Times are epoch
    milliseconds, durations are seconds. Records read back from storage may
    be missing fields, which is why most of them are optional.
    """

    phase: str | None
    start_time: int | None
    end_time: int | None
    expected_duration: float | None
    actual_duration: float | None
    completed: bool = False
    skipped: bool = False
    emergency_stop: bool = False

    @property
    def is_focus(self) -> bool:
        return self.phase == "focus"

    @property
    def is_break(self) -> bool:
        return is_break(self.phase)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted camelCase form."""
        return {
            "phase": self.phase,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "expectedDuration": self.expected_duration,
            "actualDuration": self.actual_duration,
            "completed": self.completed,
            "skipped": self.skipped,
            "emergencyStop": self.emergency_stop,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        """Create from the persisted form; accepts the legacy ``type`` key."""
        phase = data.get("phase") or data.get("type")
        return cls(
            phase=phase if isinstance(phase, str) else None,
            start_time=_optional_int(data.get("startTime")),
            end_time=_optional_int(data.get("endTime")),
            expected_duration=_optional_number(data.get("expectedDuration")),
            actual_duration=_optional_number(data.get("actualDuration")),
            completed=bool(data.get("completed", False)),
            skipped=bool(data.get("skipped", False)),
            emergency_stop=bool(data.get("emergencyStop", data.get("emergency", False))),
        )


@dataclass(frozen=True)
class RunningSessionSnapshot:
    """Minimal state needed to resume an in-flight session after a restart."""

    phase: str
    duration: float  # seconds, the full duration of the original session
    start_time: int  # epoch ms
    end_time: int  # epoch ms

    def remaining_ms(self, now: int) -> int:
        """Milliseconds left before the session's scheduled end (may be <= 0)."""
        return self.end_time - now

    def is_expired(self, now: int) -> bool:
        return self.remaining_ms(now) <= 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.phase,
            "duration": self.duration,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunningSessionSnapshot:
        """Create from dictionary. Raises KeyError/TypeError/ValueError if malformed."""
        phase = data["type"]
        if phase not in PHASES:
            raise ValueError(f"Unknown phase in snapshot: {phase!r}")
        duration = _optional_number(data["duration"])
        start_time = _optional_int(data["startTime"])
        end_time = _optional_int(data["endTime"])
        if duration is None or start_time is None or end_time is None:
            raise ValueError(f"Snapshot timing is not a finite number: {data!r}")
        return cls(
            phase=phase,
            duration=float(duration),
            start_time=start_time,
            end_time=end_time,
        )


@dataclass
class AppState:
    """Phase cycle position plus the append-only session history."""

    cycle: PhaseCycle = field(default_factory=PhaseCycle)
    sessions: list[SessionRecord] = field(default_factory=list)

    @property
    def current_phase(self) -> str:
        return self.cycle.current_phase

    @property
    def current_session(self) -> int:
        return self.cycle.current_session

    def append_session(self, record: SessionRecord) -> None:
        self.sessions.append(record)

    def clear_sessions(self) -> None:
        """Bulk-clear the history. The only operation that shrinks it."""
        self.sessions.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentPhase": self.cycle.current_phase,
            "currentSession": self.cycle.current_session,
            "sessions": [record.to_dict() for record in self.sessions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppState:
        """Create from dictionary, skipping history entries that are not objects."""
        cycle = PhaseCycle.from_dict(data)
        raw_sessions = data.get("sessions") or []
        if not isinstance(raw_sessions, list):
            raw_sessions = []
        sessions = [
            SessionRecord.from_dict(item) for item in raw_sessions if isinstance(item, dict)
        ]
        return cls(cycle=cycle, sessions=sessions)
