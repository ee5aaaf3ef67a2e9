"""Tests for CASClient over a mocked HTTP transport."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from sso_gateway.config import SSOServerConfig
from sso_gateway.exceptions import ProxyTicketError, SSOUnavailableError, TicketValidationError
from sso_gateway.sso.cas_client import CASClient
from sso_gateway.sso.protocol import SSOClient

SERVICE = "https://mail.example.edu/?_task=mail&_action=login"
CALLBACK = "https://mail.example.edu/?_action=pgt-callback"

SUCCESS = (
    "<cas:serviceResponse xmlns:cas='http://www.yale.edu/tp/cas'>"
    "<cas:authenticationSuccess><cas:user>jdoe</cas:user>"
    "<cas:proxyGrantingTicket>PGTIOU-1-abc</cas:proxyGrantingTicket>"
    "</cas:authenticationSuccess></cas:serviceResponse>"
)
PROXY_SUCCESS = (
    "<cas:serviceResponse xmlns:cas='http://www.yale.edu/tp/cas'>"
    "<cas:proxySuccess><cas:proxyTicket>PT-1-xyz</cas:proxyTicket></cas:proxySuccess>"
    "</cas:serviceResponse>"
)


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
    sso: SSOServerConfig | None = None,
    **kwargs,
) -> tuple[CASClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http_client = httpx.Client(transport=httpx.MockTransport(recording))
    client = CASClient(
        sso or SSOServerConfig(hostname="sso.example.edu"),
        service_url=SERVICE,
        http_client=http_client,
        **kwargs,
    )
    return client, seen


class TestURLs:
    """Tests for login/logout URL construction."""

    def test_login_url_encodes_service(self) -> None:
        client = CASClient(SSOServerConfig(hostname="sso.example.edu"), service_url=SERVICE)

        assert client.login_url() == (
            "https://sso.example.edu/cas/login?service="
            "https%3A%2F%2Fmail.example.edu%2F%3F_task%3Dmail%26_action%3Dlogin"
        )
        client.close()

    def test_overrides_and_port(self) -> None:
        """Given URL overrides, they replace the derived endpoints."""
        sso = SSOServerConfig(
            hostname="sso.example.edu",
            port=8443,
            login_url="https://login.example.edu/sso?theme=mail",
            logout_url="https://login.example.edu/bye",
        )
        client = CASClient(sso, service_url=SERVICE)

        assert client.login_url().startswith("https://login.example.edu/sso?theme=mail&service=")
        assert client.logout_url() == "https://login.example.edu/bye"
        client.close()

    def test_default_logout_url(self) -> None:
        with CASClient(SSOServerConfig(hostname="sso.example.edu", port=8443), service_url=SERVICE) as client:
            assert client.logout_url() == "https://sso.example.edu:8443/cas/logout"

    def test_satisfies_protocol(self) -> None:
        with CASClient(SSOServerConfig(hostname="sso.example.edu"), service_url=SERVICE) as client:
            assert isinstance(client, SSOClient)


class TestValidateServiceTicket:
    """Tests for ticket validation round-trips."""

    def test_direct_mode_uses_service_validate(self) -> None:
        client, seen = _client(lambda r: httpx.Response(200, text=SUCCESS))

        result = client.validate_service_ticket("ST-1-abc")

        assert result.principal == "jdoe"
        (request,) = seen
        assert request.url.path == "/cas/serviceValidate"
        assert request.url.params["ticket"] == "ST-1-abc"
        assert request.url.params["service"] == SERVICE
        assert "pgtUrl" not in request.url.params

    def test_proxy_mode_uses_proxy_validate_with_callback(self) -> None:
        """Given proxy mode, proxyValidate is called with pgtUrl."""
        client, seen = _client(
            lambda r: httpx.Response(200, text=SUCCESS), mode="proxy", callback_url=CALLBACK
        )

        result = client.validate_service_ticket("ST-1-abc")

        assert result.pgt_iou == "PGTIOU-1-abc"
        assert seen[0].url.path == "/cas/proxyValidate"
        assert seen[0].url.params["pgtUrl"] == CALLBACK

    def test_proxy_mode_requires_callback(self) -> None:
        with pytest.raises(ValueError, match="callback_url"):
            CASClient(SSOServerConfig(hostname="sso.example.edu"), service_url=SERVICE, mode="proxy")

    def test_rejected_ticket(self) -> None:
        body = (
            "<cas:serviceResponse xmlns:cas='http://www.yale.edu/tp/cas'>"
            "<cas:authenticationFailure code='INVALID_SERVICE'>wrong service</cas:authenticationFailure>"
            "</cas:serviceResponse>"
        )
        client, _ = _client(lambda r: httpx.Response(200, text=body))

        with pytest.raises(TicketValidationError) as exc_info:
            client.validate_service_ticket("ST-1-abc")

        assert exc_info.value.code == "INVALID_SERVICE"

    def test_http_error_status(self) -> None:
        """Given a 5xx answer, the SSO server counts as unavailable."""
        client, _ = _client(lambda r: httpx.Response(503, text="down"))

        with pytest.raises(SSOUnavailableError, match="503"):
            client.validate_service_ticket("ST-1-abc")

    def test_transport_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = _client(refuse)

        with pytest.raises(SSOUnavailableError, match="unreachable"):
            client.validate_service_ticket("ST-1-abc")


class TestRequestProxyTicket:
    """Tests for proxy ticket requests."""

    def test_success(self) -> None:
        client, seen = _client(
            lambda r: httpx.Response(200, text=PROXY_SUCCESS), mode="proxy", callback_url=CALLBACK
        )

        ticket = client.request_proxy_ticket("PGT-1-abc", "imap://mail.example.edu")

        assert ticket == "PT-1-xyz"
        assert seen[0].url.path == "/cas/proxy"
        assert seen[0].url.params["targetService"] == "imap://mail.example.edu"
        assert seen[0].url.params["pgt"] == "PGT-1-abc"

    def test_failure(self) -> None:
        body = (
            "<cas:serviceResponse xmlns:cas='http://www.yale.edu/tp/cas'>"
            "<cas:proxyFailure code='BAD_PGT'>PGT expired</cas:proxyFailure>"
            "</cas:serviceResponse>"
        )
        client, _ = _client(lambda r: httpx.Response(200, text=body), mode="proxy", callback_url=CALLBACK)

        with pytest.raises(ProxyTicketError) as exc_info:
            client.request_proxy_ticket("PGT-1-abc", "imap://mail.example.edu")

        assert exc_info.value.code == "BAD_PGT"
        assert exc_info.value.diagnostic == "PGT expired"


class TestClose:
    """Tests for HTTP client ownership."""

    def test_injected_client_is_not_closed(self) -> None:
        client, _ = _client(lambda r: httpx.Response(200, text=SUCCESS))

        client.close()

        assert client._client.is_closed is False
