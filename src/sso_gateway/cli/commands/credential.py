"""Credential command group for sso-gateway CLI.

Manages the direct-mode static backend credential in the OS keychain.
"""

from __future__ import annotations

__all__ = ["credential"]

import sys

import click

from sso_gateway.exceptions import CredentialStorageError
from sso_gateway.security.credential_storage import (
    BackendCredentialStorage,
    is_keyring_available,
)

from ..styling import style_dim, style_error, style_label, style_success

_NAME_OPTION = click.option(
    "--name",
    "-n",
    default="imap",
    show_default=True,
    help="Credential name (config direct.credential_key)",
)


@click.group()
def credential() -> None:
    """Static backend credential management (direct mode)."""
    pass


@credential.command("set")
@_NAME_OPTION
@click.password_option("--password", prompt="Backend password", help="Static backend password")
def credential_set(name: str, password: str) -> None:
    """Store the static backend credential in the OS keychain."""
    if not is_keyring_available():
        click.echo(style_error("Error: No usable OS keychain backend found."), err=True)
        click.echo("Set direct.password in the config file instead.", err=True)
        sys.exit(1)

    storage = BackendCredentialStorage(name)
    try:
        storage.save(password)
    except CredentialStorageError as e:
        click.echo(style_error(f"Error: {e}"), err=True)
        sys.exit(1)

    click.echo(style_success(f"Credential stored as '{storage.credential_key}'"))
    click.echo(f'Reference it in config.json: "direct": {{"credential_key": "{name}"}}')


@credential.command("delete")
@_NAME_OPTION
def credential_delete(name: str) -> None:
    """Remove the static backend credential from the OS keychain."""
    storage = BackendCredentialStorage(name)
    try:
        storage.delete()
    except CredentialStorageError as e:
        click.echo(style_error(f"Error: {e}"), err=True)
        sys.exit(1)

    click.echo(style_success(f"Credential '{storage.credential_key}' deleted"))


@credential.command("status")
@_NAME_OPTION
def credential_status(name: str) -> None:
    """Show whether the static backend credential is stored."""
    storage = BackendCredentialStorage(name)
    if storage.exists():
        click.echo(f"{style_label(storage.credential_key)} stored")
    else:
        click.echo(style_dim(f"No credential stored as '{storage.credential_key}'."))
        sys.exit(1)
