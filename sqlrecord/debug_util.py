"""Debug output switch for the database layer.

Supports two modes, selected with the SQLRECORD_DEBUG_MODE environment variable:
- "quiet": debug messages go to the logging module only (default)
- "loud": debug messages are also printed to stdout
"""

import logging
import os

DEBUG_MODE_ENV = "SQLRECORD_DEBUG_MODE"
_MODES = ("quiet", "loud")


class DebugUtil:
    """Route debug messages to logging or stdout based on the debug mode."""

    def __init__(self, mode: str = "") -> None:
        """Initialize from ``mode`` or, when blank, from SQLRECORD_DEBUG_MODE.

        Unknown values fall back to "quiet".
        """
        requested = (mode or os.environ.get(DEBUG_MODE_ENV, "quiet")).lower()
        self._mode = requested if requested in _MODES else "quiet"
        self._logger = logging.getLogger("sqlrecord.debug")

    def debug_mode(self) -> str:
        """Return the current debug mode ("quiet" or "loud")."""
        return self._mode

    def debug_message(self, *args: object) -> None:
        """Emit a debug message.

        In "quiet" mode the message is logged at DEBUG level. In "loud" mode it is
        printed to stdout as well.
        """
        message = " ".join(str(arg) for arg in args)
        if not message:
            return
        if self._mode == "loud":
            print("[DEBUG]", message)
        self._logger.debug(message)

    def set_mode(self, mode: str) -> None:
        """Change the debug mode. Invalid values become "quiet"."""
        self._mode = mode.lower() if mode.lower() in _MODES else "quiet"

    def is_loud(self) -> bool:
        return self._mode == "loud"

    def is_quiet(self) -> bool:
        return self._mode == "quiet"
