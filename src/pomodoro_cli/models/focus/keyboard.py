"""Keyboard input for the interactive timer.

Raw terminal bytes are turned into key names (``"s"``, ``"escape"``,
``"ctrl+w"``, ``"alt+shift+e"``, ``"f11"``) so the lock's input guard can
match them without knowing about escape sequences.
"""

import logging
import select
import sys
from typing import Optional

logger = logging.getLogger(__name__)

ESCAPE = "\x1b"
ESCAPE_TIMEOUT = 0.05  # seconds to wait for the rest of an escape sequence

CONTROL_KEYS = {
    "\x03": "ctrl+c",
    "\x11": "ctrl+q",
    "\x17": "ctrl+w",
    "\r": "enter",
    "\n": "enter",
}

# CSI sequences, as sent by xterm-compatible terminals
CSI_KEYS = {
    "[23~": "f11",
    "[24~": "f12",
}


def normalize_key(raw: str) -> Optional[str]:
    """Map a raw key sequence to its name. None for empty input."""
    if not raw:
        return None

    if raw in CONTROL_KEYS:
        return CONTROL_KEYS[raw]

    if raw == ESCAPE:
        return "escape"

    if raw.startswith(ESCAPE):
        rest = raw[1:]
        if rest in CSI_KEYS:
            return CSI_KEYS[rest]
        if len(rest) == 1 and rest.isalpha():
            # Alt sends ESC before the key; an upper-case key means Shift too
            if rest.isupper():
                return f"alt+shift+{rest.lower()}"
            return f"alt+{rest}"
        return "escape"

    return raw.lower()


class KeyboardHandler:
    """Non-blocking keyboard input handler for POSIX terminals."""

    def __init__(self):
        self.fd = None
        self.old_settings = None
        self._setup()

    def _setup(self):
        """Put the terminal in cbreak mode so keys arrive unbuffered."""
        try:
            import termios
            import tty
        except ImportError:
            logger.debug("No termios on this platform, keyboard input disabled")
            return

        try:
            self.fd = sys.stdin.fileno()
            self.old_settings = termios.tcgetattr(self.fd)
            tty.setcbreak(self.fd)
        except (OSError, ValueError, termios.error) as e:
            # Not a terminal, e.g. piped input
            logger.debug("Keyboard input unavailable: %s", e)

    def _ready(self, timeout: float = 0) -> bool:
        try:
            return bool(select.select([sys.stdin], [], [], timeout)[0])
        except (OSError, ValueError):
            return False

    def get_key(self) -> Optional[str]:
        """
        Get a single keypress without blocking.

        Returns the key name or None if no key was pressed.
        """
        if not self._ready():
            return None

        raw = sys.stdin.read(1)
        if raw == ESCAPE:
            while self._ready(ESCAPE_TIMEOUT):
                char = sys.stdin.read(1)
                raw += char
                # A lone letter or a terminated CSI sequence ends the key
                if len(raw) == 2 and char != "[":
                    break
                if len(raw) > 2 and (char == "~" or char.isalpha()):
                    break
        return normalize_key(raw)

    def stop(self):
        """Restore terminal settings."""
        if self.old_settings:
            import termios

            try:
                termios.tcsetattr(self.fd, termios.TCSADRAIN, self.old_settings)
            except termios.error as e:
                logger.debug("Could not restore terminal settings: %s", e)


class WindowsKeyboardHandler:
    """Keyboard handler for Windows using msvcrt."""

    # Second byte after a 0x00/0xE0 prefix
    SPECIAL_KEYS = {"\x85": "f11", "\x86": "f12"}

    def __init__(self):
        try:
            import msvcrt

            self.msvcrt = msvcrt
        except ImportError:
            self.msvcrt = None

    def get_key(self) -> Optional[str]:
        """Get key on Windows."""
        if not self.msvcrt or not self.msvcrt.kbhit():
            return None

        key = self.msvcrt.getwch()
        if key in ("\x00", "\xe0"):
            return self.SPECIAL_KEYS.get(self.msvcrt.getwch())
        return normalize_key(key)

    def stop(self):
        """No cleanup needed on Windows."""
        pass


def get_keyboard_handler():
    """Return the handler suited to the current platform."""
    if sys.platform == "win32":
        return WindowsKeyboardHandler()
    return KeyboardHandler()
