"""Helper functions for configuration and log file locations."""

from __future__ import annotations

__all__ = [
    "LOG_PATHS",
    "ensure_directories",
    "get_auth_log_path",
    "get_config_dir",
    "get_config_path",
    "get_log_dir",
    "get_log_path",
    "get_system_log_path",
]

from pathlib import Path
from typing import TYPE_CHECKING

from platformdirs import user_log_dir

from sso_gateway.constants import APP_NAME, CONFIG_FILENAME
from sso_gateway.utils.file_helpers import ensure_private_dir, get_app_dir

if TYPE_CHECKING:
    from sso_gateway.config import GatewayConfig

# Log type to path relative to <log_dir>/sso-gateway/
LOG_PATHS: dict[str, str] = {
    "system": "system/system.jsonl",
    "auth": "audit/auth.jsonl",
}


def get_config_dir() -> Path:
    """Get the OS-appropriate config directory.

    Returns:
        Path to the config directory (see get_app_dir()).
    """
    return get_app_dir()


def get_config_path() -> Path:
    """Get the default config file path (<config_dir>/config.json)."""
    return get_config_dir() / CONFIG_FILENAME


def get_log_dir(log_dir: str | None = None) -> Path:
    """Get the gateway log directory (<log_dir>/sso-gateway/).

    Args:
        log_dir: Base log directory. If None, uses platform default.

    Returns:
        Path: Log directory path.
    """
    base = Path(log_dir).expanduser() if log_dir else Path(user_log_dir(APP_NAME))
    return base / APP_NAME


def get_log_path(log_type: str, log_dir: str | None = None) -> Path:
    """Get full path to a log file.

    Args:
        log_type: "system" or "auth".
        log_dir: Base log directory. If None, uses platform default.

    Returns:
        Path: Full path to the log file.

    Raises:
        ValueError: If log_type is not a valid log type.

    Example:
        >>> get_log_path("auth", "/var/log")
        PosixPath('/var/log/sso-gateway/audit/auth.jsonl')
    """
    if log_type not in LOG_PATHS:
        valid_types = ", ".join(sorted(LOG_PATHS.keys()))
        raise ValueError(f"Unknown log type: '{log_type}'. Valid types: {valid_types}")
    return get_log_dir(log_dir) / LOG_PATHS[log_type]


def get_system_log_path(config: "GatewayConfig") -> Path:
    """Get path to system/system.jsonl for a loaded config."""
    return get_log_path("system", config.logging.log_dir)


def get_auth_log_path(config: "GatewayConfig") -> Path:
    """Get path to audit/auth.jsonl for a loaded config."""
    return get_log_path("auth", config.logging.log_dir)


def ensure_directories(log_dir: str | None = None) -> None:
    """Create log directories if they don't exist.

    Creates the standard log directory structure:
        <log_dir>/
        └── sso-gateway/
            ├── audit/
            └── system/

    Sets secure permissions (0o700) on Unix systems.

    Args:
        log_dir: Base log directory. If None, uses platform default.
    """
    gateway_dir = get_log_dir(log_dir)
    for directory in (gateway_dir, gateway_dir / "audit", gateway_dir / "system"):
        ensure_private_dir(directory)
