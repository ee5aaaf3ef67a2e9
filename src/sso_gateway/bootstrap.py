"""Gateway construction for host applications.

Hosts call create_gateway() once at startup and keep the returned
AuthGateway for the lifetime of the process:

    gateway = create_gateway()
    ...
    result = gateway.handle(Authenticate(), RequestContext.from_wsgi_environ(environ), session)
"""

from __future__ import annotations

__all__ = ["create_gateway"]

import logging
from pathlib import Path

from sso_gateway.config import GatewayConfig
from sso_gateway.gateway.state_machine import AuthGateway
from sso_gateway.telemetry.audit.auth_logger import create_auth_logger
from sso_gateway.telemetry.system.system_logger import (
    configure_system_logger_file,
    get_system_logger,
)
from sso_gateway.utils.config import (
    ensure_directories,
    get_auth_log_path,
    get_config_path,
    get_system_log_path,
)


def create_gateway(
    config: GatewayConfig | None = None,
    config_path: Path | None = None,
) -> AuthGateway:
    """Load configuration, set up logging and build the AuthGateway.

    Logging:
    - System log: <log_dir>/sso-gateway/system/system.jsonl (WARNING and above)
    - Auth audit: <log_dir>/sso-gateway/audit/auth.jsonl

    Args:
        config: Loaded configuration. If None, loaded from config_path.
        config_path: Config file. Defaults to the OS app dir config.json.

    Returns:
        Ready AuthGateway.

    Raises:
        FileNotFoundError: Config file missing.
        ValueError: Config file invalid.
        ConfigurationError: TLS certificate or static credential unusable.
    """
    if config is None:
        config = GatewayConfig.load_from_files(config_path or get_config_path())

    log_dir = config.logging.log_dir
    system_logger = get_system_logger()
    try:
        ensure_directories(log_dir)
    except OSError as e:
        system_logger.warning(
            {
                "event": "log_dir_unavailable",
                "error": str(e),
                "message": f"Cannot create log directories, logging to stderr: {e}",
            }
        )
    configure_system_logger_file(get_system_log_path(config))

    if config.logging.log_level == "DEBUG":
        system_logger.setLevel(logging.DEBUG)

    auth_logger = create_auth_logger(
        get_auth_log_path(config),
        logging.DEBUG if config.logging.log_level == "DEBUG" else logging.INFO,
    )

    gateway = AuthGateway.from_config(config, auth_logger=auth_logger)

    system_logger.info(
        {
            "event": "gateway_started",
            "mode": config.mode,
            "sso_base_url": config.sso.base_url,
            "tls_mode": config.tls.mode,
            "backend_caching": config.proxy.backend_caching if config.proxy else None,
            "backend_host": gateway.default_backend_host,
        }
    )
    return gateway
