"""Configuration management commands."""

import typer
from pydantic import ValidationError
from rich.prompt import Confirm
from rich.table import Table

from pomodoro_cli.commands.decorators import command_wrapper
from pomodoro_cli.config import get_config_manager
from pomodoro_cli.errors import InvalidArgumentError
from pomodoro_cli.utils.ui.console import get_console
from pomodoro_cli.utils.ui.formatters import format_success, format_warning

app = typer.Typer(help="Configuration management commands")
console = get_console()


def _check_key(key: str) -> None:
    keys = get_config_manager().keys()
    if key not in keys:
        raise InvalidArgumentError(
            f"Unknown configuration key '{key}'. Valid keys: {', '.join(keys)}"
        )


@app.command("view")
@command_wrapper
def view_config(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """View the current configuration."""
    config_manager = get_config_manager()
    if json_output:
        console.print_json(data=config_manager.config.model_dump())
        return

    table = Table(title=f"Configuration ({config_manager.config_file})")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key in config_manager.keys():
        value = config_manager.get(key)
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


@app.command("get")
@command_wrapper
def get_config(
    key: str = typer.Argument(..., help="Configuration key (e.g., output.format)"),
) -> None:
    """Get a configuration value."""
    _check_key(key)
    value = get_config_manager().get(key)
    console.print("-" if value is None else str(value), highlight=False)


@app.command("set")
@command_wrapper
def set_config(
    key: str = typer.Argument(..., help="Configuration key (e.g., output.format)"),
    value: str = typer.Argument(..., help="Configuration value (empty to unset)"),
) -> None:
    """Set a configuration value."""
    _check_key(key)
    try:
        get_config_manager().set(key, value or None)
    except ValidationError as e:
        message = e.errors()[0]["msg"] if e.errors() else str(e)
        raise InvalidArgumentError(f"Invalid value for '{key}': {message}") from e
    format_success(f"Configuration '{key}' set to '{value}'")


@app.command("reset")
@command_wrapper
def reset_config(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Reset configuration to defaults."""
    if not yes and not Confirm.ask(
        "Reset the entire configuration to defaults?", default=False
    ):
        format_warning("Cancelled")
        raise typer.Exit(0)

    get_config_manager().reset()
    format_success("Configuration reset to defaults")
