"""Logging configuration for the attendance recorder.

Handlers live on the package logger ("face_attendance"). Module loggers
returned by get_logger() carry no handlers of their own and propagate to it,
so one call to setup_logging() controls the level and outputs for the whole
package.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "face_attendance"

# Format: 2025-03-03 09:00:00 | INFO     | face_attendance.ledger | Message
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name and logger name on a terminal."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(self, stream=None):
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)
        stream = stream or sys.stdout
        self.use_color = hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_color or record.levelname not in self.COLORS:
            return super().format(record)

        # Work on a copy; other handlers share the record
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = (
            f"{self.COLORS[record.levelname]}{self.BOLD}{record.levelname}{self.RESET}"
        )
        colored.name = f"{self.BOLD}{record.name}{self.RESET}"
        return super().format(colored)


def _resolve_level(level: Optional[str]) -> int:
    if level is None:
        try:
            from face_attendance.config import get_config

            level = get_config().log_level
        except ValueError:
            level = "INFO"
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(
    name: Optional[str] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure the package logger and return a logger for ``name``.

    The package logger is configured once; later calls only add a file
    handler when ``log_file`` is given, or change the level when ``level``
    is given.

    Args:
        name: Logger name (default: the package logger). Names outside the
              package, such as a script's ``__main__``, are attached to the
              package handlers too.
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If None, reads LOG_LEVEL via Config.
        log_file: Optional file path to also log to (without colors).

    Returns:
        Logger for ``name``.

    Example:
        >>> logger = setup_logging(__name__, level="DEBUG")
        >>> logger.info("Replay started")
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    if not package_logger.handlers:
        package_logger.setLevel(_resolve_level(level))
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(sys.stdout))
        package_logger.addHandler(console_handler)
        # Avoid duplicate messages through the root logger
        package_logger.propagate = False
    elif level is not None:
        package_logger.setLevel(_resolve_level(level))

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        package_logger.addHandler(file_handler)

    if name is None or name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name or PACKAGE_LOGGER)

    # Script loggers write through the package handlers
    return package_logger.getChild(name)


def get_logger(name: str) -> logging.Logger:
    """Get logger for a module of this package.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger propagating to the configured package logger.
    """
    return setup_logging(name)
