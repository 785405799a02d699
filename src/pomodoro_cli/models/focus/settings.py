"""Timer settings."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_PHASE_SECONDS = 120 * 60


class Settings(BaseModel):
    """Durations (seconds) and switches for the Pomodoro cycle.

    Persisted with camelCase keys (``focusDuration`` ...). Instances are
    frozen; changes go through ``model_copy(update=...)`` and are only
    accepted while no session is running.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    focus_duration: int = Field(default=25 * 60, ge=1, le=MAX_PHASE_SECONDS)
    short_break_duration: int = Field(default=5 * 60, ge=1, le=MAX_PHASE_SECONDS)
    long_break_duration: int = Field(default=15 * 60, ge=1, le=MAX_PHASE_SECONDS)
    sessions_until_long_break: int = Field(default=4, ge=1)
    lock_screen_enabled: bool = Field(default=True)
    notifications_enabled: bool = Field(default=True)
    auto_start_next: bool = Field(default=True)

    @field_validator(
        "focus_duration", "short_break_duration", "long_break_duration", mode="before"
    )
    @classmethod
    def reject_bool_duration(cls, value):
        if isinstance(value, bool):
            raise ValueError("duration must be a number of seconds")
        return value

    def to_dict(self) -> dict:
        """Convert to the persisted camelCase form."""
        return self.model_dump(by_alias=True)


def setting_names() -> list[str]:
    """Snake-case names accepted by ``pomodoro settings set``."""
    return list(Settings.model_fields)
