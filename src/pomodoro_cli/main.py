"""Main entry point for Pomodoro CLI."""

import typer
from rich.console import Console

from pomodoro_cli import __version__
from pomodoro_cli.commands import config, focus
from pomodoro_cli.config import get_config_manager

app = typer.Typer(
    name="pomodoro",
    help="A Pomodoro focus timer with forced breaks",
    no_args_is_help=True,
)

console = Console()

# Timer commands live at the top level: `pomodoro run`, `pomodoro stats` ...
app.command("run")(focus.run_timer)
app.command("status")(focus.show_status)
app.command("stats")(focus.show_stats)
app.command("history")(focus.show_history)
app.command("clear")(focus.clear_data)
app.add_typer(focus.settings_app, name="settings", help="View and change timer settings")
app.add_typer(config.app, name="config", help="Configuration management")


@app.command()
def version() -> None:
    """Show version information and where data is stored."""
    console.print(f"[bold]Pomodoro CLI[/bold] version [cyan]{__version__}[/cyan]")
    console.print(f"[dim]Data directory: {get_config_manager().data_dir()}[/dim]")


# Main entry point
def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
