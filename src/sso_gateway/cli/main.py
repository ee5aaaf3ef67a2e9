"""Main CLI entry point for sso-gateway.

Defines the CLI group and registers all subcommands.

Commands:
    config     - Configuration management (show, path, validate)
    credential - Static backend credential in the OS keychain (set, delete, status)
    init       - Initialize gateway configuration
    urls       - Show service, callback and SSO URLs for a public base URL

Subcommand help:
    sso-gateway COMMAND -h     Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli"]

import sys

import click

from sso_gateway import __version__

from .commands.config import config
from .commands.credential import credential
from .commands.init import init
from .commands.urls import urls


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  # Direct mode: forward a static credential to the mail store
  sso-gateway init --hostname sso.example.edu --mode direct \\
    --credential-key imap
  sso-gateway credential set --name imap

  # Proxy mode: forward per-backend proxy tickets
  sso-gateway init --hostname sso.example.edu --mode proxy \\
    --consumer-service imap://mail.example.edu --backend-caching \\
    --tls-mode ca --cert ~/certs/ca-bundle.pem

  # Check what the SSO server will see
  sso-gateway urls --base-url https://mail.example.edu/webmail/

Operating Modes (for init --mode):
  direct  Static credential; the mail store must trust the gateway
  proxy   CAS proxy tickets; the mail store validates them with the SSO server
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """sso-gateway: CAS single sign-on gateway for webmail."""
    if version:
        click.echo(f"sso-gateway {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(config)
cli.add_command(credential)
cli.add_command(init)
cli.add_command(urls)


def main() -> None:
    """CLI entry point."""
    cli()
