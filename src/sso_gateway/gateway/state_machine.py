"""Authentication gateway: the host request-lifecycle interceptor.

Per-request states:
    Unauthenticated -> AuthenticationInProgress -> Authenticated
        -> BackendConnecting | LoggingOut | Failed

Terminal outcomes: mail session start, login failure page with session
termination, or the logout redirect chain.

Each EventKind has exactly one handler. Handlers never let an exception
reach the host: SSO failures are result values from the adapter, and a
destroyed session ends the request with a terminal no-op.

Usage:
    gateway = AuthGateway.from_config(config, auth_logger=auth_logger)
    result = gateway.handle(Authenticate(), request, session)
"""

from __future__ import annotations

__all__ = ["AuthGateway", "parse_return_url"]

import socket
import ssl
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, unquote

from sso_gateway.constants import (
    ACTION_LOGIN,
    ACTION_PGT_CALLBACK,
    ACTION_SSO_LOGOUT,
    FIRST_CONNECT_ATTEMPT,
    LOGIN_TEMPLATE,
    PARAM_PREFIX,
    RETURN_URL_FIELD,
    TASK_LOGOUT_MARKER,
    TASK_MAIL,
)
from sso_gateway.exceptions import GatewayError, SessionTerminatedError
from sso_gateway.gateway.context import RequestContext
from sso_gateway.gateway.error_view import login_failed_view
from sso_gateway.gateway.events import (
    Authenticate,
    BackendConnect,
    EventKind,
    InterceptedEvent,
    LoginFailed,
    LoginSucceeded,
    LogoutSucceeded,
    RenderPage,
    Startup,
)
from sso_gateway.gateway.result import CookieDirective, HookResult
from sso_gateway.gateway.session import GatewaySession
from sso_gateway.gateway.urls import URLBuilder
from sso_gateway.security.credential_storage import resolve_static_credential
from sso_gateway.security.tls import build_verify
from sso_gateway.sso.adapter import (
    Authenticated,
    ClientFactory,
    RedirectRequired,
    SSOClientAdapter,
)
from sso_gateway.sso.pgt_storage import create_pgt_storage
from sso_gateway.telemetry.audit.auth_logger import AuthLogger
from sso_gateway.telemetry.system.system_logger import get_system_logger

if TYPE_CHECKING:
    from sso_gateway.config import GatewayConfig
    from sso_gateway.sso.pgt_storage import PGTStorage


def parse_return_url(raw: str | None) -> dict[str, str]:
    """Parse a captured return URL into host redirect parameters.

    Keys lose their leading "_": "_task=mail&_action=compose" becomes
    {"task": "mail", "action": "compose"}. Bare flags ("_extwin") keep an
    empty value, empty segments are ignored, and pairs whose name is empty
    or contains whitespace are dropped. The first occurrence of a name wins.

    Args:
        raw: Cookie value (percent-encoded or plain query string).

    Returns:
        Parameter mapping, empty if nothing usable remains.
    """
    if not raw:
        return {}

    query = unquote(raw).strip().lstrip("?")
    params: dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        name = key[len(PARAM_PREFIX) :] if key.startswith(PARAM_PREFIX) else key
        if not name or any(ch.isspace() for ch in name):
            continue
        params.setdefault(name, value)
    return params


@dataclass
class _RequestScope:
    """Everything one handle() call works with."""

    request: RequestContext
    adapter: SSOClientAdapter
    supplied_session: GatewaySession | None
    _session: GatewaySession | None = None

    @property
    def session(self) -> GatewaySession:
        """The host session, or a request-local one if the host supplied none."""
        if self.supplied_session is not None:
            return self.supplied_session
        if self._session is None:
            self._session = GatewaySession()
        return self._session


Handler = Callable[[Any, _RequestScope], HookResult]


class AuthGateway:
    """Request lifecycle interceptor delegating authentication to the SSO server.

    One instance serves all requests; each handle() call builds its own
    SSOClientAdapter.
    """

    def __init__(
        self,
        config: "GatewayConfig",
        *,
        verify: ssl.SSLContext | bool,
        static_credential: str = "",
        pgt_storage: "PGTStorage | None" = None,
        auth_logger: AuthLogger | None = None,
        url_builder: URLBuilder | None = None,
        client_factory: ClientFactory | None = None,
        default_backend_host: str | None = None,
    ) -> None:
        """Initialize gateway.

        Args:
            config: Gateway configuration.
            verify: httpx TLS verification value for the SSO server.
            static_credential: Backend password forwarded in direct mode.
            pgt_storage: PGT storage (required in proxy mode).
            auth_logger: Audit logger. Defaults to system-log fallback.
            url_builder: Builder for gateway URLs.
            client_factory: SSOClient factory passed to each adapter.
            default_backend_host: Ticket cache key when BackendConnect names
                no host. Defaults to proxy.backend_node, then this machine's
                host name.
        """
        self._config = config
        self._verify = verify
        self._static_credential = static_credential
        self._pgt_storage = pgt_storage
        self._auth_logger = auth_logger or AuthLogger(None)
        self._url_builder = url_builder or URLBuilder()
        self._client_factory = client_factory
        self._logger = get_system_logger()

        backend_node = config.proxy.backend_node if config.proxy is not None else None
        self._default_backend_host = default_backend_host or backend_node or socket.gethostname()

        self._handlers: dict[EventKind, Handler] = {
            EventKind.STARTUP: self._on_startup,
            EventKind.RENDER_PAGE: self._on_render_page,
            EventKind.AUTHENTICATE: self._on_authenticate,
            EventKind.LOGIN_SUCCEEDED: self._on_login_succeeded,
            EventKind.LOGIN_FAILED: self._on_login_failed,
            EventKind.LOGOUT_SUCCEEDED: self._on_logout_succeeded,
            EventKind.BACKEND_CONNECT: self._on_backend_connect,
        }

    @classmethod
    def from_config(
        cls,
        config: "GatewayConfig",
        *,
        auth_logger: AuthLogger | None = None,
    ) -> "AuthGateway":
        """Build a gateway from configuration at host startup.

        Resolves the TLS policy, the static credential (direct mode) and
        the PGT storage (proxy mode).

        Raises:
            ConfigurationError: Certificate or credential reference unusable.
        """
        verify = build_verify(config.tls)

        static_credential = ""
        pgt_storage = None
        if config.is_proxy_mode:
            pgt_storage = create_pgt_storage(config)
        else:
            static_credential = resolve_static_credential(config.direct)
            if not static_credential:
                get_system_logger().warning(
                    {
                        "event": "static_credential_missing",
                        "message": "Direct mode without a static backend credential; "
                        "the backend will receive an empty password",
                    }
                )

        return cls(
            config,
            verify=verify,
            static_credential=static_credential,
            pgt_storage=pgt_storage,
            auth_logger=auth_logger,
        )

    @property
    def default_backend_host(self) -> str:
        return self._default_backend_host

    def new_adapter(self) -> SSOClientAdapter:
        """Adapter for one request."""
        return SSOClientAdapter(
            self._config,
            verify=self._verify,
            pgt_storage=self._pgt_storage,
            auth_logger=self._auth_logger,
            url_builder=self._url_builder,
            client_factory=self._client_factory,
        )

    def handle(
        self,
        event: InterceptedEvent,
        request: RequestContext,
        session: GatewaySession | MutableMapping[str, Any] | None = None,
    ) -> HookResult:
        """Handle one intercepted host event.

        Args:
            event: The event; its payload may be rewritten in place.
            request: Current request.
            session: Gateway session or the host's raw session mapping.
                None when no session exists yet.

        Returns:
            HookResult for the host.
        """
        if session is not None and not isinstance(session, GatewaySession):
            session = GatewaySession(session)

        if session is not None and session.destroyed:
            return self._terminated(event)

        scope = _RequestScope(request=request, adapter=self.new_adapter(), supplied_session=session)
        try:
            return self._handlers[event.kind](event, scope)
        except SessionTerminatedError:
            return self._terminated(event)
        finally:
            scope.adapter.close()

    def _terminated(self, event: InterceptedEvent) -> HookResult:
        self._logger.debug(
            {
                "event": "handler_skipped_destroyed_session",
                "hook": event.kind.value,
            }
        )
        return HookResult(event=event, terminate=True)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _on_startup(self, event: Startup, scope: _RequestScope) -> HookResult:
        if event.action == ACTION_PGT_CALLBACK:
            adapter = scope.adapter
            try:
                adapter.initialize(scope.request)
                adapter.receive_pgt_callback(scope.request)
            except GatewayError as e:
                self._logger.error(
                    {
                        "event": "pgt_callback_error",
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                )
            return HookResult(event=event, terminate=True)

        if event.action == ACTION_SSO_LOGOUT:
            scope.adapter.initialize(scope.request)
            return HookResult(event=event, redirect=scope.adapter.logout(), terminate=True)

        return HookResult(event=event)

    def _on_render_page(self, event: RenderPage, scope: _RequestScope) -> HookResult:
        if event.template != LOGIN_TEMPLATE:
            return HookResult(event=event)

        request = scope.request
        return_url = request.form(RETURN_URL_FIELD) or ""
        if not return_url and TASK_LOGOUT_MARKER not in request.query_string:
            return_url = request.query_string

        cookie_config = self._config.return_url_cookie
        if return_url:
            cookie = CookieDirective(
                name=cookie_config.name,
                value=return_url,
                max_age=cookie_config.max_age_seconds,
                path=cookie_config.path,
                secure=request.is_secure,
            )
        else:
            cookie = CookieDirective.delete(
                cookie_config.name, path=cookie_config.path, secure=request.is_secure
            )

        login_url = self._url_builder.build(request, {"action": ACTION_LOGIN, "task": TASK_MAIL})
        return HookResult(event=event, redirect=login_url, cookies=[cookie], terminate=True)

    def _on_authenticate(self, event: Authenticate, scope: _RequestScope) -> HookResult:
        scope.adapter.initialize(scope.request)
        outcome = scope.adapter.force_authentication(scope.request, scope.session)

        if isinstance(outcome, Authenticated):
            event.user = outcome.principal
            event.password = "" if self._config.is_proxy_mode else self._static_credential
            return HookResult(event=event)

        if isinstance(outcome, RedirectRequired):
            return HookResult(event=event, redirect=outcome.url, terminate=True)

        return HookResult(event=event)

    def _on_login_succeeded(self, event: LoginSucceeded, scope: _RequestScope) -> HookResult:
        cookie_config = self._config.return_url_cookie
        params = parse_return_url(scope.request.cookie(cookie_config.name))
        if params:
            event.redirect_params = params

        principal = None
        if scope.supplied_session is not None:
            principal = scope.supplied_session.principal
        if principal:
            self._auth_logger.log_login_succeeded(principal=principal, mode=self._config.mode)

        consumed = CookieDirective.delete(
            cookie_config.name, path=cookie_config.path, secure=scope.request.is_secure
        )
        return HookResult(event=event, cookies=[consumed])

    def _on_login_failed(self, event: LoginFailed, scope: _RequestScope) -> HookResult:
        session = scope.session
        principal = session.principal or event.user or None

        session.destroy()

        self._auth_logger.log_login_failed(principal=principal)
        self._auth_logger.log_session_destroyed(principal=principal, reason="backend login failed")

        return HookResult(
            event=event,
            error_view=login_failed_view(),
            destroy_session=True,
            terminate=True,
        )

    def _on_logout_succeeded(self, event: LogoutSucceeded, scope: _RequestScope) -> HookResult:
        logout_url = self._url_builder.build(scope.request, {"action": ACTION_SSO_LOGOUT})
        return HookResult(event=event, redirect=logout_url, terminate=True)

    def _on_backend_connect(self, event: BackendConnect, scope: _RequestScope) -> HookResult:
        if not self._config.is_proxy_mode:
            return HookResult(event=event)

        proxy = self._config.proxy
        assert proxy is not None  # enforced by GatewayConfig
        session = scope.session
        host = event.host or self._default_backend_host
        cache = session.tickets

        cached = cache.get(host)
        first_attempt = event.attempt == FIRST_CONNECT_ATTEMPT

        if cached and proxy.backend_caching and first_attempt:
            event.password = cached
            self._auth_logger.log_proxy_ticket(
                principal=session.principal,
                backend_host=host,
                attempt=event.attempt,
                target_service=proxy.consumer_service,
                reused=True,
            )
        else:
            self._fetch_backend_ticket(event, scope, host)

        if event.attempt <= FIRST_CONNECT_ATTEMPT:
            event.retry = True

        return HookResult(event=event)

    def _fetch_backend_ticket(self, event: BackendConnect, scope: _RequestScope, host: str) -> None:
        """Fetch a fresh proxy ticket for host, cache it and put it on the event."""
        proxy = self._config.proxy
        assert proxy is not None
        session = scope.session

        scope.adapter.initialize(scope.request)
        outcome = scope.adapter.force_authentication(scope.request, session)
        if not isinstance(outcome, Authenticated):
            self._logger.warning(
                {
                    "event": "backend_connect_unauthenticated",
                    "backend_host": host,
                    "attempt": event.attempt,
                }
            )
            return

        result = scope.adapter.fetch_proxy_ticket(proxy.consumer_service, session)
        if not result.ok:
            self._auth_logger.log_proxy_ticket_failed(
                principal=outcome.principal,
                backend_host=host,
                attempt=event.attempt,
                target_service=proxy.consumer_service,
                error_code=result.error_code or "",
                error_message=result.diagnostic or "",
            )
            return

        assert result.ticket is not None
        session.tickets.put(host, result.ticket)
        event.password = result.ticket
        self._auth_logger.log_proxy_ticket(
            principal=outcome.principal,
            backend_host=host,
            attempt=event.attempt,
            target_service=proxy.consumer_service,
            reused=False,
        )
