"""Factory for the JSONL file loggers behind the audit trail."""

from __future__ import annotations

__all__ = [
    "setup_jsonl_logger",
]

import logging
from pathlib import Path

from sso_gateway.utils.file_helpers import ensure_private_dir, set_secure_permissions
from sso_gateway.utils.logging.iso_formatter import ISO8601Formatter


def setup_jsonl_logger(
    logger_name: str,
    log_file: Path,
    log_level: int = logging.INFO,
) -> logging.Logger:
    """Attach a single owner-only JSONL file handler to logger_name.

    Calling it again for the same name (a host reloading its plugin, or a
    second gateway in one process) replaces the previous handler rather
    than writing every entry twice.

    Args:
        logger_name: e.g. "sso-gateway.audit.auth".
        log_file: Target file. Its directory is created 0o700.
        log_level: Minimum level written.

    Raises:
        OSError: If the log directory or file cannot be created.
    """
    ensure_private_dir(log_file.parent)

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)
    logger.propagate = False

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setLevel(log_level)
    handler.setFormatter(ISO8601Formatter())
    logger.addHandler(handler)

    # Audit entries carry hashed principals and ticket metadata
    set_secure_permissions(log_file)
    return logger
