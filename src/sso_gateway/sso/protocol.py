"""Ticket exchange operations the adapter needs from an SSO client."""

from __future__ import annotations

__all__ = ["SSOClient"]

from typing import Protocol, runtime_checkable

from sso_gateway.sso.responses import ServiceValidation


@runtime_checkable
class SSOClient(Protocol):
    """A configured client for one SSO server and one service URL.

    Implementations raise SSOError subclasses on failure.
    """

    @property
    def service_url(self) -> str: ...

    @property
    def callback_url(self) -> str | None: ...

    def login_url(self) -> str:
        """URL that sends the browser to the SSO login page for this service."""
        ...

    def logout_url(self) -> str:
        """URL of the SSO server's logout page."""
        ...

    def validate_service_ticket(self, ticket: str) -> ServiceValidation:
        """Validate a service ticket issued for this service."""
        ...

    def request_proxy_ticket(self, pgt: str, target_service: str) -> str:
        """Exchange a proxy-granting ticket for a proxy ticket."""
        ...

    def close(self) -> None: ...
