"""Configuration utilities for sso-gateway.

Provides helper functions for config and log file locations.
"""

from sso_gateway.utils.config.config_helpers import (
    ensure_directories,
    get_auth_log_path,
    get_config_dir,
    get_config_path,
    get_log_dir,
    get_log_path,
    get_system_log_path,
)

__all__ = [
    # Config path helpers
    "get_config_dir",
    "get_config_path",
    # Log path helpers
    "get_log_dir",
    "get_log_path",
    "get_system_log_path",
    "get_auth_log_path",
    "ensure_directories",
]
