"""Pomodoro CLI - focus-session scheduler with forced breaks."""

__version__ = "0.3.0"
