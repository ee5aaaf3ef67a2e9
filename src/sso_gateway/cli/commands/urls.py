"""URLs command for sso-gateway CLI.

Shows the URLs the gateway will send to the SSO server for a given
public base URL, so they can be registered as allowed services.
"""

from __future__ import annotations

__all__ = ["urls"]

import sys
from urllib.parse import urlsplit

import click

from sso_gateway.config import GatewayConfig
from sso_gateway.constants import ACTION_LOGIN, ACTION_PGT_CALLBACK, ACTION_SSO_LOGOUT, TASK_MAIL
from sso_gateway.gateway.context import RequestContext
from sso_gateway.gateway.urls import URLBuilder
from sso_gateway.sso.cas_client import CASClient
from sso_gateway.utils.config import get_config_path

from ..styling import style_error, style_label


def _request_for(base_url: str) -> RequestContext:
    """Request context as if the browser had opened base_url.

    Raises:
        click.BadParameter: If base_url is not an absolute http(s) URL.
    """
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise click.BadParameter("must be an absolute http(s) URL", param_hint="--base-url")

    https = parts.scheme == "https"
    return RequestContext(
        server_name=parts.hostname,
        server_port=parts.port or (443 if https else 80),
        https=https,
        request_uri=parts.path or "/",
    )


@click.command()
@click.option(
    "--base-url",
    required=True,
    help="Public URL of the webmail application (e.g., https://mail.example.edu/webmail/)",
)
def urls(base_url: str) -> None:
    """Show service, PGT callback and SSO URLs for a public base URL."""
    config_file_path = get_config_path()
    try:
        loaded_config = GatewayConfig.load_from_files(config_file_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(style_error(f"Error: {e}"), err=True)
        sys.exit(1)

    request = _request_for(base_url)
    builder = URLBuilder()
    service_url = builder.build(request, {"action": ACTION_LOGIN, "task": TASK_MAIL})
    callback_url = None
    if loaded_config.is_proxy_mode:
        callback_url = builder.build(request, {"action": ACTION_PGT_CALLBACK})

    with CASClient(
        loaded_config.sso,
        service_url=service_url,
        mode=loaded_config.mode,
        callback_url=callback_url,
        verify=False,
    ) as client:
        login_url = client.login_url()
        logout_url = client.logout_url()

    click.echo(f"{style_label('Service URL')} {service_url}")
    if callback_url:
        click.echo(f"{style_label('PGT callback URL')} {callback_url}")
    click.echo(f"{style_label('Gateway logout URL')} {builder.build(request, {'action': ACTION_SSO_LOGOUT})}")
    click.echo(f"{style_label('SSO login URL')} {login_url}")
    click.echo(f"{style_label('SSO logout URL')} {logout_url}")
