"""Tests for AuthGateway event handling.

Covers every intercepted host event in both operating modes, with a
scripted SSO client standing in for the CAS server.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from sso_gateway.config import GatewayConfig
from sso_gateway.constants import SESSION_DESTROYED_KEY, SESSION_PRINCIPAL_KEY
from sso_gateway.exceptions import ProxyTicketError, TicketValidationError
from sso_gateway.gateway.context import RequestContext
from sso_gateway.gateway.error_view import LOGIN_FAILED_TITLE
from sso_gateway.gateway.events import (
    Authenticate,
    BackendConnect,
    LoginFailed,
    LoginSucceeded,
    LogoutSucceeded,
    RenderPage,
    Startup,
)
from sso_gateway.gateway.session import GatewaySession
from sso_gateway.gateway.state_machine import AuthGateway, parse_return_url
from sso_gateway.sso.pgt_storage import MemoryPGTStorage
from sso_gateway.telemetry.audit.auth_logger import AuthLogger

SERVICE_URL = "https://mail.example.edu/webmail/?_task=mail&_action=login"


def _request(query: str = "", **kwargs) -> RequestContext:
    defaults = {
        "server_name": "mail.example.edu",
        "server_port": 443,
        "https": True,
        "request_uri": f"/webmail/?{query}" if query else "/webmail/",
    }
    defaults.update(kwargs)
    return RequestContext.from_query(query, **defaults)


@pytest.fixture
def auth_logger() -> MagicMock:
    return MagicMock(spec=AuthLogger)


@pytest.fixture
def pgt_storage() -> MemoryPGTStorage:
    return MemoryPGTStorage()


@pytest.fixture
def client_factory(fake_client):
    """Factory handing out fake_client with the URLs the adapter computed."""

    def factory(service_url: str, callback_url: str | None):
        fake_client.service_url = service_url
        fake_client.callback_url = callback_url
        return fake_client

    return factory


@pytest.fixture
def direct_gateway(direct_config, auth_logger, client_factory) -> AuthGateway:
    return AuthGateway(
        direct_config,
        verify=False,
        static_credential="master-secret",
        auth_logger=auth_logger,
        client_factory=client_factory,
    )


@pytest.fixture
def proxy_gateway(proxy_config, auth_logger, client_factory, pgt_storage) -> AuthGateway:
    return AuthGateway(
        proxy_config,
        verify=False,
        pgt_storage=pgt_storage,
        auth_logger=auth_logger,
        client_factory=client_factory,
    )


@pytest.fixture
def authenticated_proxy_session() -> GatewaySession:
    session = GatewaySession()
    session.principal = "jdoe"
    session.pgt = "PGT-1-abc"
    return session


# =============================================================================
# Startup
# =============================================================================


class TestStartup:
    """Tests for gateway-internal actions at request start."""

    def test_pgt_callback_stores_pgt_and_terminates(self, proxy_gateway, pgt_storage, auth_logger) -> None:
        """Given a PGT callback, the PGT is stored and the request ends."""
        request = _request("_action=pgt-callback&pgtIou=PGTIOU-1-abc&pgtId=PGT-1-xyz")

        result = proxy_gateway.handle(Startup(action="pgt-callback"), request)

        assert result.terminate is True
        assert result.redirect is None
        assert pgt_storage.pop("PGTIOU-1-abc") == "PGT-1-xyz"
        auth_logger.log_pgt_received.assert_called_once()

    def test_pgt_callback_reachability_check_stores_nothing(self, proxy_gateway, pgt_storage) -> None:
        """Given the parameterless reachability check, nothing is stored."""
        result = proxy_gateway.handle(Startup(action="pgt-callback"), _request("_action=pgt-callback"))

        assert result.terminate is True
        assert len(pgt_storage) == 0

    def test_malformed_callback_terminates(self, proxy_gateway, pgt_storage, auth_logger) -> None:
        """Given a malformed pgtId, the callback is rejected and the request still ends."""
        request = _request("_action=pgt-callback&pgtIou=PGTIOU-1-abc&pgtId=not a pgt")

        result = proxy_gateway.handle(Startup(action="pgt-callback"), request)

        assert result.terminate is True
        assert len(pgt_storage) == 0
        auth_logger.log_pgt_callback_failed.assert_called_once()

    def test_pgt_callback_in_direct_mode_terminates(self, direct_gateway, auth_logger) -> None:
        """Given a callback in direct mode, it is rejected and the request ends."""
        request = _request("_action=pgt-callback&pgtIou=PGTIOU-1-abc&pgtId=PGT-1-xyz")

        result = direct_gateway.handle(Startup(action="pgt-callback"), request)

        assert result.terminate is True
        auth_logger.log_pgt_callback_failed.assert_called_once()

    def test_sso_logout_redirects_to_sso(self, direct_gateway, auth_logger) -> None:
        """Given the sso-logout action, the browser goes to the SSO logout URL."""
        result = direct_gateway.handle(Startup(action="sso-logout"), _request("_action=sso-logout"))

        assert result.redirect == "https://sso.example.edu/cas/logout"
        assert result.terminate is True
        auth_logger.log_logout.assert_called_once()

    def test_other_actions_pass_through(self, direct_gateway, fake_client) -> None:
        """Given a host action, nothing happens."""
        result = direct_gateway.handle(Startup(action="compose", task="mail"), _request("_task=mail"))

        assert result.passed_through is True
        assert fake_client.round_trips == 0


# =============================================================================
# Login page
# =============================================================================


class TestRenderPage:
    """Tests for login page interception."""

    def test_posted_return_url_is_captured(self, direct_gateway) -> None:
        """Given a posted _url, it is stored in the return URL cookie."""
        request = _request(form_params={"_url": "_task=mail&_mbox=Archive"})

        result = direct_gateway.handle(RenderPage(template="login"), request)

        assert result.terminate is True
        assert result.redirect == SERVICE_URL
        (cookie,) = result.cookies
        assert cookie.name == "sso_return_url"
        assert cookie.value == "_task=mail&_mbox=Archive"
        assert cookie.max_age == 600
        assert cookie.secure is True

    def test_query_string_is_captured_without_form(self, direct_gateway) -> None:
        """Given no posted _url, the current query string is captured."""
        result = direct_gateway.handle(
            RenderPage(template="login"), _request("_task=addressbook&_source=0")
        )

        assert result.cookies[0].value == "_task=addressbook&_source=0"

    def test_logout_query_is_never_captured(self, direct_gateway) -> None:
        """Given an explicit logout query, the cookie is deleted instead."""
        result = direct_gateway.handle(RenderPage(template="login"), _request("_task=logout"))

        (cookie,) = result.cookies
        assert cookie.is_deletion is True
        assert result.redirect == SERVICE_URL

    def test_other_templates_pass_through(self, direct_gateway) -> None:
        """Given a non-login template, nothing happens."""
        result = direct_gateway.handle(RenderPage(template="mail"), _request("_task=mail"))

        assert result.passed_through is True


# =============================================================================
# Authenticate
# =============================================================================


class TestAuthenticate:
    """Tests for credential injection."""

    def test_no_ticket_redirects_to_sso_login(self, direct_gateway, fake_client, auth_logger) -> None:
        """Given no ticket and no session, the browser is sent to the SSO login page."""
        event = Authenticate()

        result = direct_gateway.handle(event, _request("_task=mail&_action=login"), GatewaySession())

        assert result.terminate is True
        assert result.redirect == f"https://sso.example.edu/cas/login?service={SERVICE_URL}"
        assert fake_client.service_url == SERVICE_URL
        assert event.user == ""
        auth_logger.log_sso_redirect.assert_called_once_with(mode="direct")

    def test_direct_mode_injects_static_credential(self, direct_gateway, fake_client) -> None:
        """Given a valid ticket in direct mode, user and static password are set."""
        event = Authenticate()
        session = GatewaySession()

        result = direct_gateway.handle(event, _request("_task=mail&_action=login&ticket=ST-1-abc"), session)

        assert result.passed_through is True
        assert event.user == "jdoe"
        assert event.password == "master-secret"
        assert session.principal == "jdoe"
        assert fake_client.validated_tickets == ["ST-1-abc"]
        assert fake_client.callback_url is None

    def test_proxy_mode_claims_pgt_with_empty_password(
        self, proxy_gateway, pgt_storage, fake_client
    ) -> None:
        """Given a valid ticket and a delivered PGT, the PGT moves into the session."""
        pgt_storage.save("PGTIOU-1-abc", "PGT-1-xyz")
        event = Authenticate(user="typed", password="typed")
        session = GatewaySession()

        proxy_gateway.handle(event, _request("_task=mail&_action=login&ticket=ST-1-abc"), session)

        assert event.user == "jdoe"
        assert event.password == ""
        assert session.pgt == "PGT-1-xyz"
        assert fake_client.callback_url == "https://mail.example.edu/webmail/?_action=pgt-callback"
        assert len(pgt_storage) == 0

    def test_proxy_mode_without_pgt_leaves_event_unchanged(self, proxy_gateway, auth_logger) -> None:
        """Given no PGT delivered for the pgtIou, authentication fails without a redirect."""
        event = Authenticate()
        session = GatewaySession()

        result = proxy_gateway.handle(event, _request("ticket=ST-1-abc"), session)

        assert result.passed_through is True
        assert event.user == ""
        assert session.principal is None
        call = auth_logger.log_ticket_invalid.call_args
        assert call.kwargs["error_code"] == "PGT_NOT_RECEIVED"

    def test_invalid_ticket_leaves_event_unchanged(self, direct_gateway, fake_client, auth_logger) -> None:
        """Given a rejected ticket, the host sees no user and no redirect."""
        fake_client.validation_error = TicketValidationError("ticket expired", code="INVALID_TICKET")
        event = Authenticate()

        result = direct_gateway.handle(event, _request("ticket=ST-1-old"), GatewaySession())

        assert result.passed_through is True
        assert event.user == ""
        assert event.password == ""
        auth_logger.log_ticket_invalid.assert_called_once_with(
            mode="direct", error_code="INVALID_TICKET", error_message="ticket expired"
        )

    def test_existing_principal_skips_sso(self, direct_gateway, fake_client) -> None:
        """Given a session that is already authenticated, no SSO round-trip happens."""
        event = Authenticate()
        session = GatewaySession({SESSION_PRINCIPAL_KEY: "jdoe"})

        direct_gateway.handle(event, _request("_task=mail"), session)

        assert event.user == "jdoe"
        assert fake_client.round_trips == 0

    def test_raw_host_mapping_is_accepted(self, direct_gateway) -> None:
        """Given the host's raw session dict, state is written into it."""
        data: dict = {}

        direct_gateway.handle(Authenticate(), _request("ticket=ST-1-abc"), data)

        assert data[SESSION_PRINCIPAL_KEY] == "jdoe"


# =============================================================================
# Login outcome
# =============================================================================


class TestLoginSucceeded:
    """Tests for the post-login redirect."""

    def test_restores_return_url_and_consumes_cookie(self, direct_gateway, auth_logger) -> None:
        """Given a return URL cookie, redirect params are rewritten and the cookie deleted."""
        event = LoginSucceeded(redirect_params={"task": "mail"})
        request = _request(cookies={"sso_return_url": "_task%3Daddressbook%26_source%3D0"})
        session = GatewaySession({SESSION_PRINCIPAL_KEY: "jdoe"})

        result = direct_gateway.handle(event, request, session)

        assert event.redirect_params == {"task": "addressbook", "source": "0"}
        (cookie,) = result.cookies
        assert cookie.is_deletion is True
        auth_logger.log_login_succeeded.assert_called_once_with(principal="jdoe", mode="direct")

    def test_malformed_cookie_keeps_host_params(self, direct_gateway) -> None:
        """Given an unparseable cookie, the host's own redirect is kept."""
        event = LoginSucceeded(redirect_params={"task": "mail"})
        request = _request(cookies={"sso_return_url": "%%%=&&="})

        result = direct_gateway.handle(event, request, GatewaySession())

        assert event.redirect_params == {"task": "mail"}
        assert result.cookies[0].is_deletion is True

    def test_no_cookie_still_emits_deletion(self, direct_gateway) -> None:
        """Given no cookie, a deletion is still sent."""
        event = LoginSucceeded()

        result = direct_gateway.handle(event, _request())

        assert event.redirect_params == {}
        assert result.cookies[0].is_deletion is True


class TestLoginFailed:
    """Tests for backend login failure."""

    def test_destroys_session_and_shows_error(self, direct_gateway, auth_logger) -> None:
        """Given a backend rejection, the session is destroyed and an error page shown."""
        data = {SESSION_PRINCIPAL_KEY: "jdoe"}
        session = GatewaySession(data)

        result = direct_gateway.handle(LoginFailed(user="jdoe"), _request(), session)

        assert result.terminate is True
        assert result.destroy_session is True
        assert result.error_view is not None
        assert result.error_view.title == LOGIN_FAILED_TITLE
        assert result.error_view.logout_action == "sso-logout"
        assert data == {SESSION_DESTROYED_KEY: True}
        auth_logger.log_login_failed.assert_called_once_with(principal="jdoe")
        auth_logger.log_session_destroyed.assert_called_once()

    def test_later_events_on_destroyed_session_are_noops(self, direct_gateway, fake_client) -> None:
        """Given a destroyed session, a later handler in the same request does nothing."""
        session = GatewaySession({SESSION_PRINCIPAL_KEY: "jdoe"})
        direct_gateway.handle(LoginFailed(), _request(), session)
        event = Authenticate()

        result = direct_gateway.handle(event, _request("ticket=ST-1-abc"), session)

        assert result.terminate is True
        assert result.redirect is None
        assert event.user == ""
        assert fake_client.round_trips == 0

    def test_raw_session_mapping_stays_destroyed(self, direct_gateway, fake_client) -> None:
        """Given the host's plain dict passed to each call, destruction still holds."""
        data = {SESSION_PRINCIPAL_KEY: "jdoe"}
        direct_gateway.handle(LoginFailed(), _request(), data)
        event = Authenticate()

        result = direct_gateway.handle(event, _request("ticket=ST-1-abc"), data)

        assert result.terminate is True
        assert event.user == ""
        assert event.password == ""
        assert fake_client.validated_tickets == []
        assert data == {SESSION_DESTROYED_KEY: True}


class TestLogoutSucceeded:
    """Tests for the logout chain."""

    def test_redirects_to_gateway_logout_action(self, direct_gateway) -> None:
        """Given host logout, the browser goes to the gateway's sso-logout action."""
        result = direct_gateway.handle(LogoutSucceeded(user="jdoe"), _request("_task=logout"))

        assert result.redirect == "https://mail.example.edu/webmail/?_action=sso-logout"
        assert result.terminate is True


# =============================================================================
# Backend connect
# =============================================================================


class TestBackendConnect:
    """Tests for proxy ticket injection on mail store connections."""

    def test_direct_mode_passes_through(self, direct_gateway, fake_client) -> None:
        """Given direct mode, the event is untouched."""
        event = BackendConnect(password="master-secret")

        result = direct_gateway.handle(event, _request(), GatewaySession())

        assert result.passed_through is True
        assert event.password == "master-secret"
        assert event.retry is False
        assert fake_client.round_trips == 0

    def test_first_attempt_fetches_and_caches(
        self, proxy_gateway, fake_client, authenticated_proxy_session, auth_logger
    ) -> None:
        """Given no cached ticket, a fresh one is fetched, cached and retry is enabled."""
        event = BackendConnect(attempt=1, host="imap1")

        proxy_gateway.handle(event, _request(), authenticated_proxy_session)

        assert event.password == "PT-1-fresh"
        assert event.retry is True
        assert fake_client.proxy_requests == [("PGT-1-abc", "imap://mail.example.edu")]
        assert authenticated_proxy_session.tickets.get("imap1") == "PT-1-fresh"
        assert auth_logger.log_proxy_ticket.call_args.kwargs["reused"] is False

    def test_first_attempt_reuses_cached_ticket(
        self, proxy_gateway, fake_client, authenticated_proxy_session, auth_logger
    ) -> None:
        """Given a cached ticket and caching on, it is reused without an SSO round-trip."""
        authenticated_proxy_session.tickets.put("imap1", "PT-0-cached")
        event = BackendConnect(attempt=1, host="imap1")

        proxy_gateway.handle(event, _request(), authenticated_proxy_session)

        assert event.password == "PT-0-cached"
        assert event.retry is True
        assert fake_client.round_trips == 0
        assert auth_logger.log_proxy_ticket.call_args.kwargs["reused"] is True

    def test_second_attempt_always_fetches(self, proxy_gateway, fake_client, authenticated_proxy_session) -> None:
        """Given a retry, the cached ticket is replaced and no further retry is requested."""
        authenticated_proxy_session.tickets.put("imap1", "PT-0-cached")
        event = BackendConnect(attempt=2, host="imap1")

        proxy_gateway.handle(event, _request(), authenticated_proxy_session)

        assert event.password == "PT-1-fresh"
        assert event.retry is False
        assert authenticated_proxy_session.tickets.get("imap1") == "PT-1-fresh"
        assert len(fake_client.proxy_requests) == 1

    def test_caching_disabled_always_fetches(
        self, proxy_config: GatewayConfig, auth_logger, client_factory, pgt_storage, fake_client,
        authenticated_proxy_session,
    ) -> None:
        """Given backend caching off, a cached ticket is never reused."""
        config = proxy_config.model_copy(
            update={"proxy": proxy_config.proxy.model_copy(update={"backend_caching": False})}
        )
        gateway = AuthGateway(
            config,
            verify=False,
            pgt_storage=pgt_storage,
            auth_logger=auth_logger,
            client_factory=client_factory,
        )
        authenticated_proxy_session.tickets.put("imap1", "PT-0-cached")
        event = BackendConnect(attempt=1, host="imap1")

        gateway.handle(event, _request(), authenticated_proxy_session)

        assert event.password == "PT-1-fresh"
        assert len(fake_client.proxy_requests) == 1

    def test_default_host_from_config(self, proxy_gateway, authenticated_proxy_session) -> None:
        """Given no host on the event, the configured backend node is the cache key."""
        proxy_gateway.handle(BackendConnect(), _request(), authenticated_proxy_session)

        assert proxy_gateway.default_backend_host == "imap1"
        assert authenticated_proxy_session.tickets.hosts() == ["imap1"]

    def test_proxy_failure_leaves_password_unset(
        self, proxy_gateway, fake_client, authenticated_proxy_session, auth_logger
    ) -> None:
        """Given a proxy ticket failure, no password is injected and nothing is cached."""
        fake_client.proxy_error = ProxyTicketError("PGT expired", code="INVALID_TICKET")
        event = BackendConnect(attempt=1, host="imap1")

        result = proxy_gateway.handle(event, _request(), authenticated_proxy_session)

        assert result.terminate is False
        assert event.password is None
        assert event.retry is True
        assert "imap1" not in authenticated_proxy_session.tickets
        call = auth_logger.log_proxy_ticket_failed.call_args
        assert call.kwargs["error_code"] == "INVALID_TICKET"

    def test_missing_pgt_reports_failure(self, proxy_gateway, fake_client, auth_logger) -> None:
        """Given an authenticated session without a PGT, no ticket is requested."""
        session = GatewaySession({SESSION_PRINCIPAL_KEY: "jdoe"})
        event = BackendConnect(attempt=1, host="imap1")

        proxy_gateway.handle(event, _request(), session)

        assert event.password is None
        assert fake_client.proxy_requests == []
        assert auth_logger.log_proxy_ticket_failed.call_args.kwargs["error_code"] == "PROXY_TICKET_FAILED"


# =============================================================================
# Return URL parsing
# =============================================================================


class TestParseReturnUrl:
    """Tests for parse_return_url."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("_task=mail&_action=compose", {"task": "mail", "action": "compose"}),
            ("?_task=mail", {"task": "mail"}),
            ("_task%3Dmail%26_mbox%3DINBOX", {"task": "mail", "mbox": "INBOX"}),
            ("_task=mail&_task=addressbook", {"task": "mail"}),
            ("plain=1", {"plain": "1"}),
            ("_task=mail&_action=compose&_extwin", {"task": "mail", "action": "compose", "extwin": ""}),
            ("_task=mail&_action=compose&", {"task": "mail", "action": "compose"}),
            ("_task=mail&&_mbox=INBOX", {"task": "mail", "mbox": "INBOX"}),
            ("_task=mail&_to=", {"task": "mail", "to": ""}),
            ("novalue", {"novalue": ""}),
        ],
    )
    def test_valid_values(self, raw: str, expected: dict[str, str]) -> None:
        assert parse_return_url(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "&", "=orphan", "_=x", "a b=c"])
    def test_unusable_values_yield_empty(self, raw: str | None) -> None:
        """Given a missing value or only nameless pairs, no params are produced."""
        assert parse_return_url(raw) == {}

    def test_bad_pairs_do_not_discard_good_ones(self) -> None:
        """Given one nameless pair among valid ones, only that pair is dropped."""
        assert parse_return_url("_task=mail&=orphan&a b=c&_action=compose") == {
            "task": "mail",
            "action": "compose",
        }


class TestReturnUrlRoundTrip:
    """Tests for the return URL from login page to post-login redirect."""

    def test_captured_url_restored_after_login(self, direct_gateway) -> None:
        """Given a compose URL at the login page, the post-login redirect goes back to it."""
        render = direct_gateway.handle(
            RenderPage(template="login"), _request(form_params={"_url": "_task=mail&_action=compose"})
        )
        header = render.cookies[0].to_header()
        sent_back = header.split(";", 1)[0].split("=", 1)[1]
        event = LoginSucceeded()

        direct_gateway.handle(event, _request(cookies={"sso_return_url": sent_back}))

        assert event.redirect_params == {"task": "mail", "action": "compose"}

    def test_pgt_callback_leaves_session_untouched(self, proxy_gateway) -> None:
        """Given a host session on the callback request, it is not read or written."""
        data = {"host_key": "kept"}
        request = _request("_action=pgt-callback&pgtIou=PGTIOU-1-abc&pgtId=PGT-1-xyz")

        result = proxy_gateway.handle(Startup(action="pgt-callback"), request, data)

        assert result.terminate is True
        assert data == {"host_key": "kept"}
