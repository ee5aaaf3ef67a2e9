"""Init command for sso-gateway CLI.

Writes a gateway configuration file from command-line options.
"""

from __future__ import annotations

__all__ = ["init"]

import sys
from typing import cast

import click
from pydantic import ValidationError

from sso_gateway.config import (
    DirectModeConfig,
    GatewayConfig,
    LoggingConfig,
    OperatingMode,
    ProxyModeConfig,
    SSOServerConfig,
    TLSValidationConfig,
    TLSValidationMode,
)
from sso_gateway.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_SSO_BASE_PATH,
    DEFAULT_SSO_PORT,
)
from sso_gateway.security.tls import validate_tls_config
from sso_gateway.utils.config import ensure_directories, get_config_path

from ..styling import format_error_list, style_dim, style_error, style_success, style_warning


def _require_flag(value: str | None, flag_name: str, message: str | None = None) -> str:
    """Validate a required CLI flag, exit with error if missing.

    Args:
        value: The flag value to validate.
        flag_name: Name of the flag (without --) for error message.
        message: Optional custom error message (overrides default).

    Returns:
        The validated non-None value.

    Raises:
        SystemExit: If value is None or empty.
    """
    if not value:
        msg = message or f"--{flag_name} is required"
        click.echo(style_error(f"Error: {msg}"), err=True)
        sys.exit(1)
    return value


def _build_config(
    hostname: str,
    port: int,
    base_path: str,
    mode: str,
    consumer_service: str | None,
    backend_caching: bool,
    backend_node: str | None,
    pgt_dir: str | None,
    tls_mode: str,
    cert: str | None,
    login_url: str | None,
    logout_url: str | None,
    credential_key: str | None,
    timeout: int,
    log_dir: str | None,
    log_level: str,
) -> GatewayConfig:
    """Assemble and validate a GatewayConfig from CLI values.

    Raises:
        ValidationError: If the values do not form a valid configuration.
    """
    proxy_config = None
    if mode == "proxy":
        proxy_config = ProxyModeConfig(
            consumer_service=_require_flag(
                consumer_service, "consumer-service", "--consumer-service is required in proxy mode"
            ),
            backend_caching=backend_caching,
            backend_node=backend_node,
            pgt_dir=pgt_dir,
        )

    return GatewayConfig(
        sso=SSOServerConfig(
            hostname=hostname,
            port=port,
            base_path=base_path,
            login_url=login_url,
            logout_url=logout_url,
        ),
        mode=cast(OperatingMode, mode),
        tls=TLSValidationConfig(mode=cast(TLSValidationMode, tls_mode), cert_path=cert),
        proxy=proxy_config,
        direct=DirectModeConfig(credential_key=credential_key),
        http_timeout_seconds=timeout,
        logging=LoggingConfig(log_dir=log_dir, log_level=log_level.upper()),  # type: ignore[arg-type]
    )


@click.command()
@click.option("--hostname", help="SSO (CAS) server hostname (e.g., sso.example.edu)")
@click.option(
    "--port",
    type=int,
    default=DEFAULT_SSO_PORT,
    help=f"SSO server HTTPS port (default: {DEFAULT_SSO_PORT})",
)
@click.option(
    "--base-path",
    default=DEFAULT_SSO_BASE_PATH,
    help=f"Path of the CAS endpoints (default: {DEFAULT_SSO_BASE_PATH})",
)
@click.option(
    "--mode",
    type=click.Choice(["direct", "proxy"], case_sensitive=False),
    default="direct",
    help="direct: static credential, proxy: CAS proxy tickets (default: direct)",
)
@click.option("--consumer-service", help="Backend service name proxy tickets are issued for")
@click.option(
    "--backend-caching/--no-backend-caching",
    default=False,
    help="Mail store caches proxy tickets, so cached tickets may be reused",
)
@click.option("--backend-node", help="Backend node identifier used as ticket cache key")
@click.option("--pgt-dir", help="Directory for proxy-granting tickets (default: <app dir>/pgt)")
@click.option(
    "--tls-mode",
    type=click.Choice(["none", "self", "ca"], case_sensitive=False),
    default="none",
    help="SSO server certificate validation (default: none)",
)
@click.option("--cert", help="PEM file: server certificate (self) or CA bundle (ca)")
@click.option("--login-url", help="Override SSO login URL")
@click.option("--logout-url", help="Override SSO logout URL")
@click.option("--credential-key", help="Keychain key of the static credential (direct mode)")
@click.option(
    "--timeout",
    type=int,
    default=DEFAULT_HTTP_TIMEOUT_SECONDS,
    help=f"SSO server round-trip timeout in seconds (default: {DEFAULT_HTTP_TIMEOUT_SECONDS})",
)
@click.option("--log-dir", help="Log directory path (default: platform log dir)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO"], case_sensitive=False),
    default="INFO",
    help="Logging verbosity (default: INFO)",
)
@click.option("--force", is_flag=True, help="Overwrite existing config without prompting")
def init(
    hostname: str | None,
    port: int,
    base_path: str,
    mode: str,
    consumer_service: str | None,
    backend_caching: bool,
    backend_node: str | None,
    pgt_dir: str | None,
    tls_mode: str,
    cert: str | None,
    login_url: str | None,
    logout_url: str | None,
    credential_key: str | None,
    timeout: int,
    log_dir: str | None,
    log_level: str,
    force: bool,
) -> None:
    """Initialize gateway configuration.

    Creates configuration at the OS-appropriate location:
    - macOS: ~/Library/Application Support/sso-gateway/
    - Linux: ~/.config/sso-gateway/
    - Windows: C:\\Users\\<user>\\AppData\\Roaming\\sso-gateway/

    \b
    Direct mode:
    Store the static credential with 'sso-gateway credential set' and
    reference it with --credential-key.

    \b
    Proxy mode:
    Requires --consumer-service. The SSO server must be able to reach the
    gateway's PGT callback URL over HTTPS (see 'sso-gateway urls').
    """
    config_path = get_config_path()

    if config_path.exists() and not force:
        if not click.confirm("Config already exists. Overwrite?", default=False):
            click.echo(style_dim("Aborted."))
            sys.exit(0)

    hostname = _require_flag(hostname, "hostname")
    mode = mode.lower()
    tls_mode = tls_mode.lower()

    try:
        gateway_config = _build_config(
            hostname,
            port,
            base_path,
            mode,
            consumer_service,
            backend_caching,
            backend_node,
            pgt_dir,
            tls_mode,
            cert,
            login_url,
            logout_url,
            credential_key,
            timeout,
            log_dir,
            log_level,
        )
    except ValidationError as e:
        problems = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            problems.append(f"{loc or '(root)'}: {error['msg']}")
        click.echo(format_error_list("Error: Invalid configuration:", problems), err=True)
        sys.exit(1)

    tls_errors = validate_tls_config(gateway_config.tls)
    if tls_errors:
        click.echo(format_error_list("Error: TLS certificate validation failed:", tls_errors), err=True)
        sys.exit(1)

    try:
        ensure_directories(gateway_config.logging.log_dir)
        gateway_config.save_to_file(config_path)
    except OSError as e:
        click.echo(style_error(f"Error: Failed to save configuration: {e}"), err=True)
        sys.exit(1)

    click.echo(style_success(f"Configuration saved to {config_path}"))
    if gateway_config.tls.mode == "none":
        click.echo(style_warning("SSO server certificate validation is disabled (--tls-mode none)"))
    if not gateway_config.is_proxy_mode and not credential_key:
        click.echo(
            style_dim("No static credential configured. Use --credential-key and 'sso-gateway credential set'.")
        )
