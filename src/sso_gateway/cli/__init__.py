"""Command-line interface for sso-gateway.

Provides commands for initializing configuration, managing the static
backend credential and inspecting the URLs the SSO server will see.
"""

from .main import cli, main

__all__ = ["cli", "main"]
