"""Durable key-value store port and its adapters."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract base class for the durable store the timer persists into.

    Values are opaque strings (JSON documents); the store only has to keep
    them across process restarts.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        raise NotImplementedError("KeyValueStore.get() must be implemented by adapter")

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        raise NotImplementedError("KeyValueStore.set() must be implemented by adapter")

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*. Removing a missing key is a no-op."""
        raise NotImplementedError(
            "KeyValueStore.delete() must be implemented by adapter"
        )


class MemoryStore(KeyValueStore):
    """In-process store, used for tests and ephemeral runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """Stores each key as ``<key>.json`` inside a state directory."""

    def __init__(self, state_dir: Path | None = None):
        if state_dir is None:
            from platformdirs import user_data_dir

            state_dir = Path(user_data_dir("pomodoro-cli")) / "state"

        self.state_dir = state_dir
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.state_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(value)
        os.replace(tmp_path, path)

        # Set secure permissions
        path.chmod(0o600)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
