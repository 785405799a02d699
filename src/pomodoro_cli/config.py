"""Configuration management for Pomodoro CLI."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from platformdirs import user_config_dir, user_data_dir
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "POMODORO_DATA_DIR"


class StorageConfig(BaseModel):
    """Where the timer keeps its state, settings and running snapshot."""

    data_dir: Optional[str] = Field(default=None)


class OutputConfig(BaseModel):
    """Output configuration. ``format = "json"`` makes ``stats`` and
    ``settings show`` print JSON by default."""

    format: Literal["pretty", "json"] = Field(default="pretty")


class Config(BaseModel):
    """Main configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


class ConfigManager:
    """Manages Pomodoro CLI configuration."""

    def __init__(self, profile: str = "default"):
        self.profile = profile
        self.config_dir = Path(user_config_dir("pomodoro-cli"))
        self.config_file = self.config_dir / f"{profile}.json"

        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._config: Optional[Config] = None

    @property
    def config(self) -> Config:
        """Get the current configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def load_config(self) -> Config:
        """Load configuration from file."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r") as f:
                    data = json.load(f)
                return Config(**data)
            except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
                # If config is corrupted, return default
                logger.warning("Ignoring unreadable config %s: %s", self.config_file, e)
                return Config()
        return Config()

    def save_config(self, config: Optional[Config] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self.config

        with open(self.config_file, "w") as f:
            json.dump(config.model_dump(), f, indent=2)

    def get(self, key: str) -> Any:
        """Get a configuration value by dot-separated key."""
        value: Any = self.config
        for k in key.split("."):
            if isinstance(value, BaseModel):
                value = getattr(value, k, None)
            else:
                return None
        return value

    def keys(self) -> list[str]:
        """Dot-separated names of every settable value."""
        return [
            f"{section}.{name}"
            for section, field in Config.model_fields.items()
            for name in field.annotation.model_fields
        ]

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot-separated key.

        Raises KeyError for unknown keys and pydantic's ValidationError for
        values the field does not accept; nothing is saved in either case.
        """
        if key not in self.keys():
            raise KeyError(key)
        section, name = key.split(".")
        config_dict = self.config.model_dump()
        config_dict[section][name] = value

        self._config = Config(**config_dict)
        self.save_config()

    def reset(self) -> None:
        """Reset configuration to defaults."""
        self._config = Config()
        self.save_config()

    def data_dir(self) -> Path:
        """Resolve the state directory: env override, then config, then platform default."""
        override = os.environ.get(DATA_DIR_ENV) or self.config.storage.data_dir
        if override:
            return Path(override).expanduser()
        return Path(user_data_dir("pomodoro-cli")) / "state"


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(profile: str = "default") -> ConfigManager:
    """Get or create the global config manager."""
    global _config_manager
    if _config_manager is None or _config_manager.profile != profile:
        _config_manager = ConfigManager(profile)
    return _config_manager
