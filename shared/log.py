#!/usr/bin/env python3
"""
hackbot Logging Configuration

Centralized logging setup for consistent formatting across the project.
Supports both development (console) and production (file) modes.

Usage:
    from shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Joining channel...")
    logger.warning("Send failed", extra={"channel": "lounge", "nick": "bot"})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional, Dict, Any
import os


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so the file handler does not receive escape codes
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.COLORS['RESET']}"

        return super().format(record)


class GenericFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        chat_context = []

        # Extract common session fields from extra data
        if hasattr(record, 'channel'):
            chat_context.append(f"channel={record.channel}")
        if hasattr(record, 'nick'):
            chat_context.append(f"nick={record.nick}")
        if hasattr(record, 'msg_cmd'):
            chat_context.append(f"cmd={record.msg_cmd}")

        if chat_context:
            record = logging.makeLogRecord(record.__dict__)
            context_str = f"[{' '.join(chat_context)}] "
            record.msg = f"{context_str}{record.msg}"

        return super().format(record)


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()

def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance

    Examples:
        logger = get_logger(__name__)
        logger.info("Session starting")

        # With context
        logger.error("Join failed", extra={
            "channel": "lounge",
            "nick": "hackbot",
            "msg_cmd": "join"
        })
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger


def set_level(level: str) -> None:
    """Apply a log level to every logger configured through get_logger."""
    log_level = _get_log_level(level)
    for name in _loggers_configured:
        logging.getLogger(name).setLevel(log_level)
    logging.getLogger().setLevel(log_level)


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    log_level = _get_log_level(level)
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    if _is_development():
        _add_file_handler(logger)
        _add_console_handler(logger, colored=True)
    else:
        # Production: Clean console + file logging
        _add_console_handler(logger, colored=False)
        _add_file_handler(logger)

    # Prevent duplicate messages from parent loggers
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    if level is None:
        level = os.getenv('HACK_LOG_LEVEL')
    if level:
        return getattr(logging, level.upper(), logging.INFO)

    return logging.DEBUG if _is_development() else logging.INFO


def _is_development() -> bool:
    """Detect if we're in development mode"""
    return (
        os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development'] or
        'pytest' in sys.modules
    )


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add console handler with appropriate formatter"""

    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stderr)

    if colored and _supports_color():
        formatter = ColoredFormatter(
            fmt=fmt,
            datefmt='%H:%M:%S'
        )
    else:
        formatter = GenericFormatter(
            fmt=fmt,
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger) -> None:
    """Add file handler for production logging"""

    log_dir = Path(os.getenv('HACK_LOG_DIR', 'logs'))
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        # Read-only working directory; console logging still works
        return

    log_file = log_dir / "hackbot.log"
    handler = logging.FileHandler(log_file, encoding="utf-8")

    formatter = GenericFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if terminal supports color output"""

    if not (hasattr(sys.stderr, "isatty") and sys.stderr.isatty()):
        return False

    if os.getenv("TERM", "") == "dumb" or os.getenv("NO_COLOR") is not None:
        return False

    if sys.platform == "win32":
        # On modern Windows terminals, ANSI colors are supported
        return os.getenv("ANSICON") is not None or os.getenv("WT_SESSION") is not None or os.getenv("TERM_PROGRAM") == "vscode" or "WindowsTerminal" in os.getenv("TERM", "")

    return True

# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the entire application.
    Call this once at application startup.

    Args:
        level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
    """
    root_logger = logging.getLogger()
    _configure_logger(root_logger, level)
    set_level(level)


def log_chat_event(logger: logging.Logger, level: str, message: str,
                   frame: Optional[Dict[str, Any]] = None,
                   **context: Any) -> None:
    """
    Log an inbound protocol frame with structured context.

    Args:
        logger: Logger instance
        level: Log level ("debug", "info", "warning", "error")
        message: Log message
        frame: decoded JSON frame for automatic context extraction
        **context: Additional context fields

    Example:
        log_chat_event(logger, "debug", "Unhandled frame",
                       frame=data, channel="lounge")
    """

    extra_context = {}

    if frame:
        extra_context['msg_cmd'] = frame.get('cmd')
        if frame.get('nick') is not None:
            extra_context['nick'] = frame.get('nick')
        if frame.get('channel') is not None:
            extra_context['channel'] = frame.get('channel')

    extra_context.update(context)

    log_func = getattr(logger, level.lower())
    log_func(message, extra=extra_context)
