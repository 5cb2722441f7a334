"""
Logger Utility
==============

Context-prefixed console logging for the relay bot.

Each component owns a ``Logger`` named after itself, so a single request can be
followed across the Slack handlers, the relay and the completion client:

    [2024-05-02T10:30:00] [INFO] [Relay] gpt reply for U123 (212 chars)
    [2024-05-02T10:30:00] [ERROR] [Completion] Completion call failed

The minimum level comes from the LOG_LEVEL environment variable. Errors go to
stderr, everything else to stdout.

Usage:
    from gptrelay.utils.logger import Logger

    logger = Logger("Relay")
    logger.info("Relay ready")
    logger.debug("Outbound call", {"user": "U123", "turns": 4})
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Numeric log levels; higher is more severe."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def _get_log_level_from_env() -> LogLevel:
    """Read LOG_LEVEL, falling back to INFO for unknown values."""
    return _LEVEL_NAMES.get(os.getenv("LOG_LEVEL", "INFO").upper(), LogLevel.INFO)


class Logger:
    """
    A logger that prefixes every line with its component context.

    Example:
        handlers_logger = Logger("Handlers")
        polish_logger = handlers_logger.child("Polish")
        polish_logger.info("Opened loading modal")   # [Handlers:Polish] ...
    """

    def __init__(self, context: str = ""):
        """
        Args:
            context: Prefix shown in brackets on every message
        """
        self.context = context
        self._min_level = _get_log_level_from_env()

    def child(self, child_context: str) -> "Logger":
        """Return a logger whose context is ``parent:child``."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self._min_level

    def _format_message(self, level: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""

        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        print(self._format_message(level_name, message, color), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            print(f"{Colors.DIM}{data_str}{Colors.RESET}", file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log detail that is only useful while developing (LOG_LEVEL=DEBUG)."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log normal operational events."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log something unexpected that the bot recovered from."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(
        self,
        message: str,
        error: BaseException | None = None,
        data: dict[str, Any] | None = None
    ) -> None:
        """
        Log a failure.

        Args:
            message: What was being attempted
            error: The exception, if any; its type and message are included
            data: Extra structured context (user id, view id, ...)
        """
        details = dict(data or {})
        if error is not None:
            details["error_type"] = type(error).__name__
            details["error_message"] = str(error)
            cause = getattr(error, "cause", None) or error.__cause__
            if cause is not None:
                details["cause_type"] = type(cause).__name__
                details["cause_message"] = str(cause)
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, details or None)


# Default logger for code without a more specific component
logger = Logger("GPTRelay")
