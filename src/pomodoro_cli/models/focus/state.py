"""Session persistence: app state, settings and the running-session snapshot."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from .records import AppState, RunningSessionSnapshot
from .settings import Settings
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

RUNNING_SESSION_KEY = "runningSession"
STATE_KEY = "state"
SETTINGS_KEY = "settings"


class SessionStore:
    """Reads and writes the three persisted records through a KeyValueStore.

    Unreadable data never raises: it is logged and replaced by defaults.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _load_json(self, key: str) -> dict | None:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Could not parse saved %s: %s", key, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring saved %s: expected an object", key)
            return None
        return data

    def _save_json(self, key: str, data: dict) -> None:
        self.store.set(key, json.dumps(data, indent=2))

    # App state

    def load_state(self) -> AppState:
        """Load phase, session index and history. Returns defaults if missing or invalid."""
        data = self._load_json(STATE_KEY)
        if data is None:
            return AppState()
        return AppState.from_dict(data)

    def save_state(self, state: AppState) -> None:
        self._save_json(STATE_KEY, state.to_dict())

    # Settings

    def load_settings(self) -> Settings:
        """Load settings, falling back to defaults for invalid documents."""
        data = self._load_json(SETTINGS_KEY)
        if data is None:
            return Settings()
        try:
            return Settings.model_validate(data)
        except ValidationError as e:
            logger.warning("Saved settings are invalid, using defaults: %s", e)
            return Settings()

    def save_settings(self, settings: Settings) -> None:
        self._save_json(SETTINGS_KEY, settings.to_dict())

    # Running session snapshot

    def save_running_session(self, snapshot: RunningSessionSnapshot) -> None:
        self._save_json(RUNNING_SESSION_KEY, snapshot.to_dict())

    def load_running_session(self) -> RunningSessionSnapshot | None:
        """Load the snapshot. A corrupt snapshot is deleted and None returned."""
        data = self._load_json(RUNNING_SESSION_KEY)
        if data is None:
            if self.store.get(RUNNING_SESSION_KEY) is not None:
                self.clear_running_session()
            return None
        try:
            return RunningSessionSnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning("Could not load running session: %s", e)
            self.clear_running_session()
            return None

    def clear_running_session(self) -> None:
        self.store.delete(RUNNING_SESSION_KEY)

    def has_running_session(self) -> bool:
        return self.store.get(RUNNING_SESSION_KEY) is not None

    def clear_all(self) -> None:
        """Remove state, settings and snapshot."""
        for key in (RUNNING_SESSION_KEY, STATE_KEY, SETTINGS_KEY):
            self.store.delete(key)
