"""Pomodoro timer commands.

``run`` drives the timer interactively on the asyncio event loop; the other
commands read or change the persisted state without starting a loop.
"""

import asyncio
import math
import signal
from datetime import datetime

import typer
from pydantic.alias_generators import to_snake
from rich.live import Live
from rich.prompt import Confirm
from rich.table import Table

from pomodoro_cli.commands.decorators import command_wrapper
from pomodoro_cli.config import get_config_manager
from pomodoro_cli.errors import (
    InvalidArgumentError,
    InvalidSettingError,
    SessionActiveError,
)
from pomodoro_cli.models.focus.analytics import TIMEFRAMES, FocusAnalytics, get_insights
from pomodoro_cli.models.focus.clock import SystemClock
from pomodoro_cli.models.focus.controller import FocusController
from pomodoro_cli.models.focus.events import EventBus, SessionCompleted, SessionInterrupted
from pomodoro_cli.models.focus.keyboard import get_keyboard_handler
from pomodoro_cli.models.focus.lock import EMERGENCY_HOTKEY, InputGuard, LockEnforcer
from pomodoro_cli.models.focus.notifications import Variant
from pomodoro_cli.models.focus.records import phase_display_name
from pomodoro_cli.models.focus.scheduler import AsyncioScheduler
from pomodoro_cli.models.focus.settings import setting_names
from pomodoro_cli.models.focus.state import SessionStore
from pomodoro_cli.models.focus.storage import JsonFileStore
from pomodoro_cli.models.focus.ui import TimerDisplay, show_session_summary
from pomodoro_cli.utils.logger import get_logger
from pomodoro_cli.utils.ui.console import get_console
from pomodoro_cli.utils.ui.formatters import (
    format_clock,
    format_duration,
    format_info,
    format_success,
    format_warning,
    render_progress_bar,
)

console = get_console()
settings_app = typer.Typer(help="View and change timer settings")

LOOP_INTERVAL = 0.1  # seconds between keyboard polls


class ConsoleNotifier:
    """Prints notifications as console lines."""

    _styles = {"info": "blue", "success": "green", "warning": "yellow"}

    def notify(self, message: str, variant: Variant = "info") -> None:
        style = self._styles.get(variant, "blue")
        console.print(f"[{style}]{message}[/{style}]")


class TerminalControls:
    """Start/skip/stop keys of the interactive run."""

    def __init__(self):
        self.enabled = True

    def disable_controls(self) -> None:
        self.enabled = False

    def enable_controls(self) -> None:
        self.enabled = True


def get_session_store() -> SessionStore:
    """Session store backed by JSON files in the configured data directory."""
    return SessionStore(JsonFileStore(get_config_manager().data_dir()))


def _format_started(start_time: int | None) -> str:
    if not start_time:
        return "-"
    try:
        return datetime.fromtimestamp(start_time / 1000).strftime("%Y-%m-%d %H:%M")
    except (ValueError, OverflowError, OSError):
        return "-"


def _json_requested(json_output: bool) -> bool:
    """--json, or ``output.format = json`` in the config file."""
    return json_output or get_config_manager().config.output.format == "json"


def build_controller(notifier=None) -> FocusController:
    """Controller for commands that do not run the event loop."""
    return FocusController(
        get_session_store(),
        SystemClock(),
        AsyncioScheduler(),
        notifier=notifier or ConsoleNotifier(),
    )


@command_wrapper
async def run_timer(
    cycles: int = typer.Option(
        0, "--cycles", "-n", help="Stop after this many focus sessions (0 = no limit)"
    ),
    no_lock: bool = typer.Option(
        False, "--no-lock", help="Do not lock the terminal during breaks"
    ),
):
    """Run the timer, resuming an interrupted session if there is one."""
    logger = get_logger()
    clock = SystemClock()
    scheduler = AsyncioScheduler(asyncio.get_running_loop())
    events = EventBus()
    notifier = ConsoleNotifier()
    guard = InputGuard()
    controls = TerminalControls()

    lock = None
    if not no_lock:
        lock = LockEnforcer(
            clock, scheduler, guard, controls=controls, notifier=notifier, events=events
        )

    controller = FocusController(
        get_session_store(),
        clock,
        scheduler,
        events=events,
        notifier=notifier,
        lock=lock,
    )

    done = asyncio.Event()
    focus_completed = 0

    def on_completed(event: SessionCompleted) -> None:
        nonlocal focus_completed
        show_session_summary(event.record, console)
        if event.record.is_focus:
            focus_completed += 1
            if cycles and focus_completed >= cycles:
                controller.cancel_auto_start()
                done.set()

    def on_interrupted(event: SessionInterrupted) -> None:
        show_session_summary(event.record, console)

    events.subscribe(SessionCompleted, on_completed)
    events.subscribe(SessionInterrupted, on_interrupted)

    def on_sigint() -> None:
        # Ctrl+C goes through the guard first; it only quits when unlocked.
        if not guard.dispatch("ctrl+c"):
            done.set()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, on_sigint)
    except (NotImplementedError, RuntimeError) as e:
        logger.debug("SIGINT handler unavailable: %s", e)

    if not controller.restore():
        controller.start()

    display = TimerDisplay(console)
    keyboard = get_keyboard_handler()
    try:
        with Live(
            _render(display, controller), console=console, refresh_per_second=4
        ) as live:
            while not done.is_set():
                key = keyboard.get_key()
                if key and not guard.dispatch(key):
                    _handle_key(key, controller, controls, done)
                live.update(_render(display, controller))
                await asyncio.sleep(LOOP_INTERVAL)
    finally:
        keyboard.stop()
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    if controller.is_running():
        format_info("Session saved. Run 'pomodoro run' to resume it.")


def _handle_key(key: str, controller: FocusController, controls, done) -> None:
    if key == EMERGENCY_HOTKEY:
        controller.emergency_stop()
    elif not controls.enabled:
        return
    elif key == "q":
        done.set()
    elif key == "s":
        controller.skip()
    elif key == "x":
        controller.stop()
    elif key in (" ", "enter") and not controller.is_running():
        controller.start()


def _render(display: TimerDisplay, controller: FocusController):
    session = controller.engine.current_session
    if session is not None:
        phase = session.phase
        remaining = controller.engine.get_remaining_time()
        total = session.expected_duration
    else:
        phase = controller.current_phase
        total = controller.get_current_phase_duration()
        remaining = total
    return display.create_panel(
        phase,
        remaining,
        total,
        controller.current_session,
        controller.settings.sessions_until_long_break,
        running=session is not None,
        locked=controller.is_locked(),
    )


@command_wrapper
def show_status():
    """Show the current phase and any session in progress."""
    store = get_session_store()
    state = store.load_state()
    settings = store.load_settings()
    snapshot = store.load_running_session()

    console.print("\n[bold cyan]🍅 Pomodoro Status[/bold cyan]\n")
    console.print(f"Phase: [bold]{phase_display_name(state.current_phase)}[/bold]")
    console.print(
        f"Session: {state.current_session} "
        f"(long break every {settings.sessions_until_long_break})"
    )

    if snapshot is None:
        console.print("[dim]No session in progress[/dim]\n")
        return

    remaining_ms = snapshot.remaining_ms(SystemClock().now())
    if remaining_ms <= 0:
        console.print("[yellow]Last session has expired[/yellow]\n")
        return

    remaining = math.ceil(remaining_ms / 1000)
    elapsed = snapshot.duration - remaining
    console.print(
        f"Running: {phase_display_name(snapshot.phase)}  "
        f"{render_progress_bar(elapsed, snapshot.duration, width=20)}  "
        f"{format_clock(remaining)} remaining"
    )
    console.print("[dim]Run 'pomodoro run' to resume it.[/dim]\n")


@command_wrapper
def show_stats(
    timeframe: str = typer.Option(
        "all", "--timeframe", "-t", help="today, week, month or all"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show focus statistics."""
    if timeframe not in TIMEFRAMES:
        raise InvalidArgumentError(
            f"Unknown timeframe '{timeframe}'. Choose from: {', '.join(TIMEFRAMES)}"
        )

    store = get_session_store()
    state = store.load_state()
    analytics = FocusAnalytics(state.sessions, now=SystemClock().now())
    stats = analytics.stats(timeframe)

    if _json_requested(json_output):
        console.print_json(
            data={
                **stats.to_dict(),
                "phaseBreakdown": analytics.phase_breakdown(timeframe),
                "hourlyDistribution": analytics.hourly_distribution(timeframe),
                "focusTrend": analytics.focus_trend(timeframe),
                "insights": get_insights(stats),
            }
        )
        return

    console.print(f"\n[bold cyan]🍅 Focus Statistics ({timeframe})[/bold cyan]\n")

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Sessions", str(stats.total_sessions))
    table.add_row(
        "Completed",
        f"{stats.completed_sessions} ({stats.completion_rate:.0f}%)",
    )
    table.add_row("Focus time", format_duration(stats.total_focus_time))
    table.add_row("Break time", format_duration(stats.total_break_time))
    table.add_row("Average session", f"{stats.avg_session_length:.1f}m")
    table.add_row("Average break", f"{stats.avg_break_length:.1f}m")
    table.add_row("Current streak", str(stats.current_streak))
    table.add_row("Longest streak", str(stats.longest_streak))
    table.add_row("Today", str(stats.todays_sessions))
    table.add_row("Early stops", str(stats.early_stops))
    table.add_row("Emergency stops", str(stats.emergency_stops))
    table.add_row(
        "Focus efficiency",
        f"{render_progress_bar(stats.focus_efficiency, 100)} {stats.focus_efficiency:.0f}%",
    )
    table.add_row("Consistency", f"{stats.session_consistency:.0f}%")
    console.print(table)

    insights = get_insights(stats)
    if insights:
        console.print("\n[bold]Insights:[/bold]")
        for insight in insights:
            console.print(f"  • {insight}")
    console.print()


@command_wrapper
def show_history(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of sessions to show"),
):
    """Show the most recent sessions."""
    if limit <= 0:
        raise InvalidArgumentError("--limit must be a positive number")

    sessions = get_session_store().load_state().sessions
    if not sessions:
        console.print("[dim]No sessions recorded yet[/dim]")
        return

    table = Table(title="Recent Sessions")
    table.add_column("Started")
    table.add_column("Phase")
    table.add_column("Duration", justify="right")
    table.add_column("Result")

    for record in list(sessions)[-limit:][::-1]:
        started = _format_started(record.start_time)
        if record.emergency_stop:
            result = "[red]emergency stop[/red]"
        elif record.completed:
            result = "[green]completed[/green]"
        elif record.skipped:
            result = "[yellow]skipped[/yellow]"
        else:
            result = "[yellow]stopped[/yellow]"
        table.add_row(
            started,
            phase_display_name(record.phase),
            format_clock(record.actual_duration or 0),
            result,
        )

    console.print(table)


@settings_app.command("show")
@command_wrapper
def show_settings(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the current settings."""
    settings = get_session_store().load_settings()

    if _json_requested(json_output):
        console.print_json(data=settings.to_dict())
        return

    table = Table(title="Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for name, value in settings.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


def _normalize_setting_key(key: str) -> str:
    name = to_snake(key.replace("-", "_"))
    if name not in setting_names():
        raise InvalidSettingError(
            f"Unknown setting '{key}'. Valid keys: {', '.join(setting_names())}"
        )
    return name


def _require_no_session(store: SessionStore, action: str) -> None:
    """Refuse *action* while another process has a session in flight."""
    snapshot = store.load_running_session()
    if snapshot is not None and not snapshot.is_expired(SystemClock().now()):
        raise SessionActiveError(
            f"Cannot {action} while a {phase_display_name(snapshot.phase)} "
            "session is running"
        )


@settings_app.command("set")
@command_wrapper
def set_setting(
    key: str = typer.Argument(..., help="Setting name, e.g. focus_duration"),
    value: str = typer.Argument(..., help="New value (durations in seconds)"),
):
    """Change one setting. Refused while a session is running."""
    name = _normalize_setting_key(key)
    controller = build_controller()
    _require_no_session(controller.store, "change settings")
    settings = controller.update_settings(**{name: value})
    format_success(f"Set {name} = {getattr(settings, name)}")


@settings_app.command("reset")
@command_wrapper
def reset_settings():
    """Restore the default settings."""
    controller = build_controller()
    _require_no_session(controller.store, "reset settings")
    controller.reset_settings()


@command_wrapper
def clear_data(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Delete all history, settings and any session in progress."""
    if not yes and not Confirm.ask(
        "This deletes all session history and settings. Continue?", default=False
    ):
        format_warning("Cancelled")
        raise typer.Exit(0)

    build_controller().clear_all_data()
