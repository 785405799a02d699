"""Focus mode - Pomodoro timer core for Pomodoro CLI."""

from .analytics import FocusAnalytics, FocusStats, calculate_stats, is_session_completed
from .clock import Clock, SystemClock
from .controller import FocusController
from .cycling import PhaseCycle
from .engine import TimerEngine
from .events import EventBus
from .keyboard import KeyboardHandler
from .lock import InputGuard, LockEnforcer
from .records import AppState, RunningSessionSnapshot, SessionRecord
from .scheduler import AsyncioScheduler, Scheduler
from .settings import Settings
from .state import SessionStore
from .storage import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "AppState",
    "AsyncioScheduler",
    "Clock",
    "EventBus",
    "FocusAnalytics",
    "FocusController",
    "FocusStats",
    "InputGuard",
    "JsonFileStore",
    "KeyValueStore",
    "KeyboardHandler",
    "LockEnforcer",
    "MemoryStore",
    "PhaseCycle",
    "RunningSessionSnapshot",
    "Scheduler",
    "SessionRecord",
    "SessionStore",
    "Settings",
    "SystemClock",
    "TimerEngine",
    "calculate_stats",
    "is_session_completed",
]
