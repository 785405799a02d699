"""Terminal timer display for the interactive run."""

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .records import SessionRecord, is_break, phase_display_name

PHASE_COLORS = {
    "focus": "cyan",
    "shortBreak": "green",
    "longBreak": "magenta",
}


class TimerDisplay:
    """Builds the renderable shown while the timer runs."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def create_panel(
        self,
        phase: str,
        remaining: int,
        total: float,
        session_index: int,
        sessions_until_long_break: int,
        running: bool = True,
        locked: bool = False,
    ) -> Panel:
        """Create the timer panel: countdown and progress, key hints below."""
        color = PHASE_COLORS.get(phase, "cyan")
        if locked:
            title = f"{phase_display_name(phase)} - screen locked"
        elif running:
            title = phase_display_name(phase)
        else:
            title = f"{phase_display_name(phase)} - waiting"

        body = self._create_body_content(
            phase, remaining, total, session_index, sessions_until_long_break
        )
        return Panel(
            Group(body, Text(""), self._create_footer_text(locked)),
            title=f"[bold {color}]🍅  {title}[/bold {color}]",
            border_style="red" if locked else color,
            padding=(1, 4),
        )

    def _create_body_content(
        self,
        phase: str,
        remaining: int,
        total: float,
        session_index: int,
        sessions_until_long_break: int,
    ) -> Group:
        remaining = max(0, remaining)
        mins = remaining // 60
        secs = remaining % 60

        if is_break(phase):
            timer_color = PHASE_COLORS.get(phase, "green")
        elif remaining < 60:
            timer_color = "red"
        elif remaining < 300:
            timer_color = "yellow"
        else:
            timer_color = "cyan"

        components = [
            Text(f"{mins:02d}:{secs:02d}", style=f"bold {timer_color}", justify="center"),
            Text(""),
        ]

        elapsed = total - remaining
        progress_pct = min(100, int(elapsed / total * 100)) if total > 0 else 0
        bar_width = 40
        filled = int(bar_width * progress_pct / 100)
        progress_bar = "▓" * filled + "░" * (bar_width - filled)
        components.append(
            Text(f"{progress_bar}  {progress_pct}%", style="dim", justify="center")
        )

        components.append(Text(""))
        position = (session_index - 1) % sessions_until_long_break + 1
        components.append(
            Text(
                f"Session {position} of {sessions_until_long_break}",
                style="dim",
                justify="center",
            )
        )
        return Group(*components)

    def _create_footer_text(self, locked: bool) -> Text:
        """Create footer with keyboard hints."""
        if locked:
            hints = "Break in progress  •  Alt+Shift+E for emergency stop"
        else:
            hints = "Press 's' to skip  •  'x' to stop  •  'q' to quit"
        return Text(hints, style="dim", justify="center")


def show_session_summary(record: SessionRecord, console: Console | None = None):
    """Show a panel describing a finished session."""
    console = console or Console()

    if record.emergency_stop:
        title, style = "Emergency stop", "red"
    elif record.completed:
        title, style = f"{phase_display_name(record.phase)} complete!", "green"
    elif record.skipped:
        title, style = f"{phase_display_name(record.phase)} skipped", "yellow"
    else:
        title, style = f"{phase_display_name(record.phase)} stopped", "yellow"

    actual_minutes = int((record.actual_duration or 0) // 60)
    expected_minutes = round((record.expected_duration or 0) / 60)
    console.print(
        Panel(
            f"[bold {style}]{title}[/bold {style}]\n\n"
            f"Planned: {expected_minutes} minutes\n"
            f"Actual: {actual_minutes} minutes",
            border_style=style,
            padding=(1, 2),
        )
    )
