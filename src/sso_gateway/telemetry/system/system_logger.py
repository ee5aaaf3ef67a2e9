"""System logger for operational events.

This module provides a singleton system logger for all operational events
that aren't part of the auth audit trail (e.g. SSO server unreachable, PGT
callback failures, certificate expiry warnings).

Logging strategy:
- Console (stderr): ALL operational messages (INFO, WARNING, ERROR, CRITICAL)
- File (system.jsonl): Only issues (WARNING, ERROR, CRITICAL)

The file handler is configured separately via configure_system_logger_file() once
the log_dir from config is available.
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "reset_system_logger",
]

import logging
import sys
from pathlib import Path

from sso_gateway.constants import APP_NAME
from sso_gateway.utils.file_helpers import ensure_private_dir
from sso_gateway.utils.logging.iso_formatter import ISO8601Formatter

# Appended to console lines when present
CONSOLE_CONTEXT_FIELDS = ("backend_host", "error_code", "path")


class ConsoleFormatter(logging.Formatter):
    """Single-line stderr output: "LEVEL: message [backend_host=... error_code=...]".

    Dict messages show their "message" (or "event") followed by whichever
    CONSOLE_CONTEXT_FIELDS they carry.
    """

    def format(self, record: logging.LogRecord) -> str:
        if not isinstance(record.msg, dict):
            return f"{record.levelname}: {record.getMessage()}"

        text = record.msg.get("message") or record.msg.get("event", "")
        context = " ".join(
            f"{key}={record.msg[key]}" for key in CONSOLE_CONTEXT_FIELDS if record.msg.get(key) is not None
        )
        return f"{record.levelname}: {text} [{context}]" if context else f"{record.levelname}: {text}"


# Module-level singleton logger
_system_logger: logging.Logger | None = None
_file_handler_configured: bool = False


def get_system_logger() -> logging.Logger:
    """Get the singleton system logger instance.

    Creates the logger on first call with stderr handler only.
    File handler is added later via configure_system_logger_file().

    Returns:
        logging.Logger: Configured system logger instance.

    Example:
        >>> logger = get_system_logger()
        >>> logger.warning({"event": "sso_unavailable", "error": "..."})
    """
    global _system_logger

    if _system_logger is not None:
        return _system_logger

    _system_logger = logging.getLogger(f"{APP_NAME}.system")
    _system_logger.setLevel(logging.INFO)
    _system_logger.propagate = False

    for handler in _system_logger.handlers:
        handler.close()
    _system_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.INFO)
    stderr_handler.setFormatter(ConsoleFormatter())
    _system_logger.addHandler(stderr_handler)

    return _system_logger


def configure_system_logger_file(log_path: Path) -> None:
    """Configure the system logger's file handler with the configured log path.

    Should be called once after config is loaded.
    The file handler logs WARNING, ERROR, CRITICAL only (persistent issues).

    Args:
        log_path: Path to the system log file (see get_system_log_path()).
    """
    global _file_handler_configured

    if _file_handler_configured:
        return

    logger = get_system_logger()

    try:
        ensure_private_dir(log_path.parent)
    except OSError:
        return  # stderr still works

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ISO8601Formatter())
    logger.addHandler(file_handler)

    _file_handler_configured = True


def reset_system_logger() -> None:
    """Close all handlers and forget the singleton (used by tests and CLI reloads)."""
    global _system_logger, _file_handler_configured

    if _system_logger is not None:
        for handler in _system_logger.handlers:
            handler.close()
        _system_logger.handlers.clear()
    _system_logger = None
    _file_handler_configured = False
