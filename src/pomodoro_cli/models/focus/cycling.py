"""Pomodoro phase cycling: focus, short break, long break."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from .settings import Settings

Phase = Literal["focus", "shortBreak", "longBreak"]

PHASES: tuple[Phase, ...] = ("focus", "shortBreak", "longBreak")


@dataclass
class PhaseCycle:
    """Current position in the Pomodoro cycle.

    ``current_session`` counts focus sessions and only ever grows; stopping
    a session sends the cycle back to focus without touching it.
    """

    current_phase: Phase = "focus"
    current_session: int = 1

    def next_phase(self, settings: Settings) -> Phase:
        """Determine the phase that follows the current one.

        The long-break check uses the index of the focus session that is
        finishing, so with four sessions per long break the fourth focus
        session is followed by a long break.
        """
        if self.current_phase == "focus":
            if self.current_session % settings.sessions_until_long_break == 0:
                return "longBreak"
            return "shortBreak"

        # Any break returns to focus
        return "focus"

    def advance(self, settings: Settings) -> Phase:
        """Move past a completed (or skipped) session and return the new phase."""
        next_phase = self.next_phase(settings)

        if self.current_phase == "focus":
            self.current_session += 1

        self.current_phase = next_phase
        return next_phase

    def reset_to_focus(self) -> None:
        """Back to focus after a stop; progress is kept."""
        self.current_phase = "focus"

    def get_duration(self, settings: Settings, phase: Phase | None = None) -> int:
        """Get duration in seconds for *phase* (defaults to the current phase)."""
        phase = phase or self.current_phase
        if phase == "longBreak":
            return settings.long_break_duration
        elif phase == "shortBreak":
            return settings.short_break_duration
        else:
            return settings.focus_duration

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentPhase": self.current_phase,
            "currentSession": self.current_session,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PhaseCycle:
        """Create from dictionary, falling back to defaults for bad values."""
        phase = data.get("currentPhase", "focus")
        if phase not in PHASES:
            phase = "focus"

        session = data.get("currentSession", 1)
        if isinstance(session, bool) or not isinstance(session, int) or session < 1:
            session = 1

        return cls(current_phase=phase, current_session=session)
