"""Unit tests for command decorators."""

import logging

import pytest
import typer
from typer.testing import CliRunner

from pomodoro_cli.commands.decorators import command_wrapper
from pomodoro_cli.errors import FocusError, InvalidSettingError, SessionActiveError
from pomodoro_cli.utils.exit_codes import (
    ERROR_GENERAL,
    ERROR_INVALID_ARGS,
    ERROR_SESSION_ACTIVE,
)

runner = CliRunner()


def _app_for(func) -> typer.Typer:
    app = typer.Typer()
    app.command()(command_wrapper(func))
    return app


class TestCommandWrapper:
    def test_returns_result(self):
        @command_wrapper
        def ok():
            return 42

        assert ok() == 42

    def test_preserves_metadata(self):
        def documented():
            """Does things."""

        wrapped = command_wrapper(documented)
        assert wrapped.__name__ == "documented"
        assert wrapped.__doc__ == "Does things."

    def test_runs_coroutines(self):
        @command_wrapper
        async def async_cmd(value):
            return value * 2

        assert async_cmd(21) == 42

    @pytest.mark.parametrize(
        "error,code",
        [
            (FocusError("boom"), ERROR_GENERAL),
            (SessionActiveError("running"), ERROR_SESSION_ACTIVE),
            (InvalidSettingError("bad value"), ERROR_INVALID_ARGS),
        ],
    )
    def test_focus_errors_map_to_exit_codes(self, error, code):
        @command_wrapper
        def failing():
            raise error

        with pytest.raises(typer.Exit) as exc_info:
            failing()
        assert exc_info.value.exit_code == code

    def test_unexpected_error_is_general(self):
        @command_wrapper
        def failing():
            raise RuntimeError("kaput")

        with pytest.raises(typer.Exit) as exc_info:
            failing()
        assert exc_info.value.exit_code == ERROR_GENERAL

    def test_typer_exit_passes_through(self):
        @command_wrapper
        def leaving():
            raise typer.Exit(code=0)

        with pytest.raises(typer.Exit) as exc_info:
            leaving()
        assert exc_info.value.exit_code == 0

    def test_error_message_printed(self):
        def failing():
            raise SessionActiveError("Cannot change settings while a session is running")

        result = runner.invoke(_app_for(failing), [])
        assert result.exit_code == ERROR_SESSION_ACTIVE
        assert "Error:" in result.output
        assert "while a session is running" in result.output

    def test_unexpected_error_message(self):
        def failing():
            raise ValueError("kaput")

        result = runner.invoke(_app_for(failing), [])
        assert result.exit_code == ERROR_GENERAL
        assert "An unexpected error occurred: kaput" in result.output

    def test_logs_start_and_completion(self, tmp_path):
        @command_wrapper
        def ok():
            return None

        ok()
        for handler in logging.getLogger("pomodoro_cli").handlers:
            handler.flush()

        # conftest points user_log_dir at tmp_path / "logs"
        content = (tmp_path / "logs" / "pomodoro.log").read_text()
        assert "command started: ok" in content
        assert "command completed: ok" in content

    def test_logs_failures(self, tmp_path):
        @command_wrapper
        def failing():
            raise InvalidSettingError("focus_duration must be positive")

        with pytest.raises(typer.Exit):
            failing()
        for handler in logging.getLogger("pomodoro_cli").handlers:
            handler.flush()

        content = (tmp_path / "logs" / "pomodoro.log").read_text()
        assert "command failed: failing" in content
        assert "focus_duration must be positive" in content
        assert "[ERROR_INVALID_ARGS: Invalid arguments or validation error]" in content

    def test_logs_unexpected_failures_as_general(self, tmp_path):
        @command_wrapper
        def crashing():
            raise RuntimeError("kaput")

        with pytest.raises(typer.Exit):
            crashing()
        for handler in logging.getLogger("pomodoro_cli").handlers:
            handler.flush()

        content = (tmp_path / "logs" / "pomodoro.log").read_text()
        assert "command failed: crashing" in content
        assert "[ERROR_GENERAL] - kaput" in content
        assert "RuntimeError" in content
