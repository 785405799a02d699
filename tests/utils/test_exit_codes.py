"""Unit tests for pomodoro_cli.utils.exit_codes and the error classes built on it."""

from __future__ import annotations

import pytest

from pomodoro_cli.errors import (
    FocusError,
    InvalidArgumentError,
    InvalidSettingError,
    SessionActiveError,
)
from pomodoro_cli.utils.exit_codes import (
    ERROR_GENERAL,
    ERROR_INVALID_ARGS,
    ERROR_SESSION_ACTIVE,
    SUCCESS,
    get_exit_code_description,
    get_exit_code_name,
)

ALL_CODES = [SUCCESS, ERROR_GENERAL, ERROR_INVALID_ARGS, ERROR_SESSION_ACTIVE]


class TestExitCodeConstants:
    def test_values(self):
        assert (SUCCESS, ERROR_GENERAL, ERROR_INVALID_ARGS, ERROR_SESSION_ACTIVE) == (
            0,
            1,
            2,
            3,
        )

    def test_all_constants_are_unique(self):
        assert len(set(ALL_CODES)) == len(ALL_CODES)


class TestGetExitCodeName:
    @pytest.mark.parametrize(
        "code,name",
        [
            (SUCCESS, "SUCCESS"),
            (ERROR_GENERAL, "ERROR_GENERAL"),
            (ERROR_INVALID_ARGS, "ERROR_INVALID_ARGS"),
            (ERROR_SESSION_ACTIVE, "ERROR_SESSION_ACTIVE"),
        ],
    )
    def test_known_codes(self, code, name):
        assert get_exit_code_name(code) == name

    def test_unknown_code(self):
        assert get_exit_code_name(99) == "UNKNOWN(99)"


class TestGetExitCodeDescription:
    @pytest.mark.parametrize("code", ALL_CODES)
    def test_known_codes_have_descriptions(self, code):
        assert get_exit_code_description(code) != "Unknown error"

    def test_unknown_code(self):
        assert get_exit_code_description(-1) == "Unknown error"


class TestErrorExitCodes:
    @pytest.mark.parametrize(
        "error_cls,code",
        [
            (FocusError, ERROR_GENERAL),
            (SessionActiveError, ERROR_SESSION_ACTIVE),
            (InvalidArgumentError, ERROR_INVALID_ARGS),
            (InvalidSettingError, ERROR_INVALID_ARGS),
        ],
    )
    def test_exit_code(self, error_cls, code):
        assert error_cls("boom").exit_code == code

    def test_all_errors_share_a_base(self):
        assert issubclass(InvalidSettingError, FocusError)
        assert issubclass(SessionActiveError, FocusError)
