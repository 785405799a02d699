"""Custom exceptions for Pomodoro CLI."""

from pomodoro_cli.utils.exit_codes import (
    ERROR_GENERAL,
    ERROR_INVALID_ARGS,
    ERROR_SESSION_ACTIVE,
)


class FocusError(Exception):
    """Base exception for all Pomodoro CLI errors."""

    exit_code = ERROR_GENERAL


class SessionActiveError(FocusError):
    """Raised when an operation needs the timer to be idle."""

    exit_code = ERROR_SESSION_ACTIVE


class InvalidArgumentError(FocusError):
    """Raised for command arguments outside the accepted values."""

    exit_code = ERROR_INVALID_ARGS


class InvalidSettingError(InvalidArgumentError):
    """Raised when a settings key is unknown or its value fails validation."""
