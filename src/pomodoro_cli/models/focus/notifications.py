"""Notifier port for user-visible feedback."""

from __future__ import annotations

import logging
from typing import Literal, Protocol, runtime_checkable

Variant = Literal["info", "success", "warning"]

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Delivers a short message to the user (snackbar, console line, desktop popup)."""

    def notify(self, message: str, variant: Variant = "info") -> None: ...


class LoggingNotifier:
    """Fallback notifier that writes messages to the application log."""

    _levels = {
        "info": logging.INFO,
        "success": logging.INFO,
        "warning": logging.WARNING,
    }

    def notify(self, message: str, variant: Variant = "info") -> None:
        logger.log(self._levels.get(variant, logging.INFO), "[%s] %s", variant, message)
