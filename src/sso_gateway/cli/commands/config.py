"""Config command group for sso-gateway CLI.

Provides configuration management subcommands.
"""

from __future__ import annotations

__all__ = ["config"]

import json
import sys
from pathlib import Path

import click

from sso_gateway.config import GatewayConfig
from sso_gateway.security.tls import get_certificate_expiry_info, validate_tls_config
from sso_gateway.utils.config import (
    get_auth_log_path,
    get_config_path,
    get_system_log_path,
)

from ..styling import (
    format_error_list,
    style_default,
    style_error,
    style_field,
    style_header,
    style_success,
    style_warning,
)


def _load_raw_config(config_path: Path) -> dict[str, object]:
    """Load raw JSON from config file without Pydantic defaults."""
    with open(config_path, encoding="utf-8") as f:
        result: dict[str, object] = json.load(f)
        return result


def _is_default(raw_config: dict[str, object], *keys: str) -> bool:
    """Check if a config path is missing from raw file (using default).

    Args:
        raw_config: Raw JSON dict from file.
        *keys: Path to the value (e.g., "return_url_cookie", "max_age_seconds").

    Returns:
        True if the key path is missing from raw config.
    """
    current: object = raw_config
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return True
        current = current[key]
    return False


@click.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def config_show(as_json: bool) -> None:
    """Display current configuration.

    Loads configuration from the OS-appropriate location.
    Values marked (default) are not in the config file - using built-in defaults.
    The static credential is never printed.
    """
    config_file_path = get_config_path()

    try:
        loaded_config = GatewayConfig.load_from_files(config_file_path)
        raw_config = _load_raw_config(config_file_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo("\n" + style_error(f"Error: {e}"), err=True)
        sys.exit(1)

    if as_json:
        # SecretStr dumps as "**********"
        config_dict = loaded_config.model_dump(mode="json")
        config_dict["_computed"] = {
            "config_file": str(config_file_path),
            "sso_base_url": loaded_config.sso.base_url,
            "log_files": {
                "system": str(get_system_log_path(loaded_config)),
                "auth": str(get_auth_log_path(loaded_config)),
            },
        }
        click.echo(json.dumps(config_dict, indent=2))
        return

    click.echo("\nsso-gateway configuration:\n")

    def field(name: str, value: object, *keys: str, level: int = 1) -> None:
        """Echo one field, marked (default) when keys are absent from the file."""
        click.echo(style_field(name, value, level=level, default=bool(keys) and _is_default(raw_config, *keys)))

    sso = loaded_config.sso
    click.echo(style_header("SSO Server"))
    field("hostname", sso.hostname)
    field("port", sso.port, "sso", "port")
    field("base_path", sso.base_path, "sso", "base_path")
    field("login_url", sso.login_url or f"{sso.base_url}/login")
    field("logout_url", sso.logout_url or f"{sso.base_url}/logout")
    field("http_timeout_seconds", loaded_config.http_timeout_seconds, "http_timeout_seconds")
    click.echo()

    tls = loaded_config.tls
    click.echo(style_header("TLS Validation"))
    field("mode", tls.mode, "tls", "mode")
    if tls.cert_path:
        field("cert_path", tls.cert_path)
        info = get_certificate_expiry_info(tls.cert_path)
        if "error" in info:
            field("certificate", style_error(str(info["error"])))
        else:
            field(
                "certificate",
                f"{info['status']} (expires {info['expires_at']}, {info['days_until_expiry']} days)",
            )
    if tls.mode == "none":
        click.echo("  " + style_warning("SSO server certificate is not validated"))
    click.echo()

    click.echo(style_header("Operating Mode"))
    field("mode", loaded_config.mode, "mode")
    if loaded_config.proxy is not None:
        proxy = loaded_config.proxy
        click.echo("  proxy:")
        field("consumer_service", proxy.consumer_service, level=2)
        field("backend_caching", proxy.backend_caching, level=2)
        field("backend_node", proxy.backend_node or "(this host)", level=2)
        field("pgt_dir", proxy.pgt_dir or "(app dir)/pgt", level=2)
    if not loaded_config.is_proxy_mode:
        direct = loaded_config.direct
        click.echo("  direct:")
        if direct.password is not None:
            field("credential", "(inline, hidden)", level=2)
        elif direct.credential_key:
            field("credential", f"keychain '{direct.credential_key}'", level=2)
        else:
            field("credential", None, level=2)
    click.echo()

    cookie = loaded_config.return_url_cookie
    cookie_default = _is_default(raw_config, "return_url_cookie")
    click.echo(style_header("Return URL Cookie") + (style_default() if cookie_default else ""))
    field("name", cookie.name)
    field("max_age_seconds", cookie.max_age_seconds)
    field("path", cookie.path)
    click.echo()

    click.echo(style_header("Logging"))
    field("log_dir", loaded_config.logging.log_dir or "(platform default)")
    field("log_level", loaded_config.logging.log_level, "logging", "log_level")
    click.echo("  Log files (computed from log_dir):")
    field("system", get_system_log_path(loaded_config), level=2)
    field("auth", get_auth_log_path(loaded_config), level=2)
    click.echo()

    click.echo(f"Config file: {config_file_path}")


@config.command("path")
def config_path_cmd() -> None:
    """Show config file path.

    Displays the OS-appropriate config file location:
    - macOS: ~/Library/Application Support/sso-gateway/
    - Linux: ~/.config/sso-gateway/
    - Windows: C:\\Users\\<user>\\AppData\\Roaming\\sso-gateway/
    """
    path = get_config_path()
    click.echo(str(path))

    if not path.exists():
        click.echo("(file does not exist - run 'sso-gateway init' to create)", err=True)


@config.command("validate")
@click.option(
    "--path",
    "-p",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Validate file at this path (does not change config location)",
)
def config_validate(path: Path | None) -> None:
    """Validate configuration file.

    Checks the config file for:
    - Valid JSON syntax
    - Schema validation (required fields, types, mode-specific settings)
    - TLS certificate file (exists, PEM, not expired)

    Exit codes:
        0: Config is valid
        1: Config is invalid or not found
    """
    config_file_path = path or get_config_path()

    try:
        loaded_config = GatewayConfig.load_from_files(config_file_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(style_error(str(e)), err=True)
        sys.exit(1)

    errors = validate_tls_config(loaded_config.tls)
    if errors:
        click.echo(format_error_list("TLS certificate validation failed:", errors), err=True)
        sys.exit(1)

    click.echo(style_success(f"Config valid: {config_file_path}"))
