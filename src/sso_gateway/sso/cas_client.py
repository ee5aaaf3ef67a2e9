"""CAS 2.0 protocol client.

Covers the operations a CAS client or proxy needs:
- login/logout URL construction
- serviceValidate (client) and proxyValidate with pgtUrl (proxy)
- /proxy proxy ticket requests

Flow (proxy mode):
1. Browser returns from the SSO login page with ?ticket=ST-...
2. validate_service_ticket() calls proxyValidate with pgtUrl
3. SSO server delivers pgtIou -> pgtId to the callback URL
4. Response names the pgtIou, which the caller resolves from PGT storage
5. request_proxy_ticket() exchanges the PGT for PT-... per backend service
"""

from __future__ import annotations

__all__ = [
    "CASClient",
]

import ssl
from typing import TYPE_CHECKING, Literal
from urllib.parse import urlencode

import httpx

from sso_gateway.exceptions import SSOUnavailableError
from sso_gateway.sso.responses import (
    ServiceValidation,
    parse_proxy_response,
    parse_validation_response,
)

if TYPE_CHECKING:
    from sso_gateway.config import SSOServerConfig


class CASClient:
    """CAS 2.0 client bound to one service URL.

    Usage:
        with CASClient(sso_config, service_url=url, mode="direct") as client:
            redirect = client.login_url()
            validation = client.validate_service_ticket(ticket)
    """

    def __init__(
        self,
        sso: "SSOServerConfig",
        *,
        service_url: str,
        mode: Literal["direct", "proxy"] = "direct",
        callback_url: str | None = None,
        verify: ssl.SSLContext | bool = True,
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize CAS client.

        Args:
            sso: SSO server location and URL overrides.
            service_url: Service URL the SSO server returns the browser to.
            mode: "proxy" validates with proxyValidate and requests a PGT.
            callback_url: PGT callback URL (required in proxy mode).
            verify: httpx TLS verification value (see security.tls.build_verify).
            timeout: Timeout in seconds for each round-trip.
            http_client: Optional httpx client (for testing).
        """
        if mode == "proxy" and not callback_url:
            raise ValueError("callback_url is required in proxy mode")

        self._sso = sso
        self._service_url = service_url
        self._mode = mode
        self._callback_url = callback_url if mode == "proxy" else None
        self._client = http_client or httpx.Client(timeout=timeout, verify=verify)
        self._owns_client = http_client is None
        self._base_url = sso.base_url

    def __enter__(self) -> "CASClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client:
            self._client.close()

    @property
    def service_url(self) -> str:
        return self._service_url

    @property
    def callback_url(self) -> str | None:
        return self._callback_url

    @property
    def mode(self) -> str:
        return self._mode

    def login_url(self) -> str:
        """URL of the SSO login page, returning to the service URL."""
        base = self._sso.login_url or f"{self._base_url}/login"
        separator = "&" if "?" in base else "?"
        return f"{base}{separator}{urlencode({'service': self._service_url})}"

    def logout_url(self) -> str:
        """URL of the SSO logout page."""
        return self._sso.logout_url or f"{self._base_url}/logout"

    def _get(self, endpoint: str, params: dict[str, str]) -> bytes:
        """GET a CAS endpoint and return the body.

        Raises:
            SSOUnavailableError: Transport failure or non-200 status.
        """
        url = f"{self._base_url}/{endpoint}"
        try:
            response = self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise SSOUnavailableError(f"SSO server unreachable ({endpoint}): {e}") from e

        if response.status_code != 200:
            raise SSOUnavailableError(
                f"SSO server returned HTTP {response.status_code} for {endpoint}"
            )
        return response.content

    def validate_service_ticket(self, ticket: str) -> ServiceValidation:
        """Validate a service ticket.

        Direct mode uses serviceValidate. Proxy mode uses proxyValidate and
        passes pgtUrl, so the server delivers a PGT to the callback.

        Args:
            ticket: Service ticket from the `ticket` query parameter.

        Returns:
            ServiceValidation with the principal (and pgtIou in proxy mode).

        Raises:
            TicketValidationError: Ticket rejected by the SSO server.
            SSOUnavailableError: SSO server unreachable or response malformed.
        """
        params = {"service": self._service_url, "ticket": ticket}
        if self._mode == "proxy":
            assert self._callback_url is not None
            params["pgtUrl"] = self._callback_url
            return parse_validation_response(self._get("proxyValidate", params))
        return parse_validation_response(self._get("serviceValidate", params))

    def request_proxy_ticket(self, pgt: str, target_service: str) -> str:
        """Request a proxy ticket for a backend service.

        Args:
            pgt: Proxy-granting ticket of the authenticated session.
            target_service: Service identifier of the backend.

        Returns:
            Proxy ticket.

        Raises:
            ProxyTicketError: Request rejected by the SSO server.
            SSOUnavailableError: SSO server unreachable or response malformed.
        """
        body = self._get("proxy", {"targetService": target_service, "pgt": pgt})
        return parse_proxy_response(body)
