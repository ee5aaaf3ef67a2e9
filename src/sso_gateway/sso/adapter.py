"""SSO client adapter used by the authentication gateway.

Wraps an SSOClient with the gateway's own URLs, PGT storage and audit
logging. Every SSOError is turned into a result value here; nothing in
the SSOError family is raised past this module.

One adapter serves one request. initialize() builds the client once;
the adapter's state is either Uninitialized or Initialized.
"""

from __future__ import annotations

__all__ = [
    "AdapterState",
    "AuthOutcome",
    "Authenticated",
    "ClientFactory",
    "Initialized",
    "NotAuthenticated",
    "ProxyTicketResult",
    "RedirectRequired",
    "SSOClientAdapter",
    "Uninitialized",
]

import re
import ssl
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sso_gateway.constants import ACTION_LOGIN, ACTION_PGT_CALLBACK, TASK_MAIL
from sso_gateway.exceptions import PGTStorageError, ProxyTicketError, SSOError
from sso_gateway.gateway.urls import URLBuilder
from sso_gateway.sso.cas_client import CASClient
from sso_gateway.sso.protocol import SSOClient
from sso_gateway.telemetry.audit.auth_logger import AuthLogger
from sso_gateway.telemetry.system.system_logger import get_system_logger
from sso_gateway.utils.logging.logging_helpers import redact_ticket

if TYPE_CHECKING:
    from sso_gateway.config import GatewayConfig
    from sso_gateway.gateway.context import RequestContext
    from sso_gateway.gateway.session import GatewaySession
    from sso_gateway.sso.pgt_storage import PGTStorage

# CAS 2.0 ticket formats for callback input
_PGT_PATTERN = re.compile(r"^PGT-[.\-\w]+$")
_PGT_IOU_PATTERN = re.compile(r"^PGTIOU-[.\-\w]+$")

# (service_url, callback_url) -> client
ClientFactory = Callable[[str, str | None], SSOClient]


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class Authenticated:
    """The session belongs to a verified principal."""

    principal: str


@dataclass(frozen=True)
class RedirectRequired:
    """The browser must visit the SSO server first."""

    url: str


@dataclass(frozen=True)
class NotAuthenticated:
    """Authentication failed (ticket rejected, SSO unreachable, PGT missing)."""

    code: str
    reason: str


AuthOutcome = Authenticated | RedirectRequired | NotAuthenticated


@dataclass(frozen=True)
class ProxyTicketResult:
    """Outcome of a proxy ticket request.

    Attributes:
        ticket: Proxy ticket, or None on failure.
        error_code: CAS or local error code on failure.
        diagnostic: Failure detail.
    """

    ticket: str | None = None
    error_code: str | None = None
    diagnostic: str | None = None

    @property
    def ok(self) -> bool:
        return self.ticket is not None


# =============================================================================
# Adapter state
# =============================================================================


@dataclass(frozen=True)
class Uninitialized:
    """No client has been built yet."""


@dataclass(frozen=True)
class Initialized:
    """Client built for the current request's URLs."""

    client: SSOClient


AdapterState = Uninitialized | Initialized


class SSOClientAdapter:
    """Ticket exchange operations for one request.

    Usage:
        adapter = SSOClientAdapter(config, verify=False, pgt_storage=storage)
        adapter.initialize(request)
        outcome = adapter.force_authentication(request, session)
    """

    def __init__(
        self,
        config: "GatewayConfig",
        *,
        verify: ssl.SSLContext | bool,
        pgt_storage: "PGTStorage | None" = None,
        auth_logger: AuthLogger | None = None,
        url_builder: URLBuilder | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        """Initialize adapter.

        Args:
            config: Gateway configuration.
            verify: httpx TLS verification value for the SSO server.
            pgt_storage: Storage the PGT callback writes to (proxy mode).
            auth_logger: Audit logger. Defaults to system-log fallback.
            url_builder: Builder for service and callback URLs.
            client_factory: Builds the SSOClient from (service_url, callback_url).
                Defaults to CASClient.
        """
        if config.is_proxy_mode and pgt_storage is None:
            raise ValueError("pgt_storage is required in proxy mode")

        self._config = config
        self._verify = verify
        self._pgt_storage = pgt_storage
        self._auth_logger = auth_logger or AuthLogger(None)
        self._url_builder = url_builder or URLBuilder()
        self._client_factory = client_factory or self._default_client
        self._state: AdapterState = Uninitialized()
        self._logger = get_system_logger()

    @property
    def state(self) -> AdapterState:
        return self._state

    @property
    def mode(self) -> str:
        return self._config.mode

    def _default_client(self, service_url: str, callback_url: str | None) -> SSOClient:
        return CASClient(
            self._config.sso,
            service_url=service_url,
            mode=self._config.mode,
            callback_url=callback_url,
            verify=self._verify,
            timeout=self._config.http_timeout_seconds,
        )

    def initialize(self, request: "RequestContext") -> SSOClient:
        """Build the SSO client for this request (once).

        Later calls return the same client.

        Args:
            request: Current request (source of the service and callback URLs).

        Returns:
            The initialized client.
        """
        if isinstance(self._state, Initialized):
            return self._state.client

        service_url = self._url_builder.build(request, {"action": ACTION_LOGIN, "task": TASK_MAIL})
        callback_url = None
        if self._config.is_proxy_mode:
            callback_url = self._url_builder.build(request, {"action": ACTION_PGT_CALLBACK})

        client = self._client_factory(service_url, callback_url)
        self._state = Initialized(client)

        self._logger.debug(
            {
                "event": "sso_client_initialized",
                "mode": self._config.mode,
                "service_url": service_url,
                "callback_url": callback_url,
            }
        )
        return client

    def _client(self) -> SSOClient:
        if not isinstance(self._state, Initialized):
            raise RuntimeError("SSOClientAdapter.initialize() must be called first")
        return self._state.client

    def close(self) -> None:
        """Release the client's HTTP resources."""
        if isinstance(self._state, Initialized):
            self._state.client.close()

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def force_authentication(
        self,
        request: "RequestContext",
        session: "GatewaySession",
    ) -> AuthOutcome:
        """Make sure the session belongs to a verified principal.

        An existing session principal short-circuits. Otherwise the `ticket`
        query parameter is validated; in proxy mode the PGT delivered for the
        returned pgtIou is claimed and kept in the session. Without a ticket
        the browser must go to the SSO login page.

        Args:
            request: Current request.
            session: Gateway session.

        Returns:
            Authenticated, RedirectRequired or NotAuthenticated.
        """
        principal = session.principal
        if principal:
            return Authenticated(principal)

        client = self._client()
        ticket = request.query("ticket")
        if not ticket:
            self._auth_logger.log_sso_redirect(mode=self._config.mode)
            return RedirectRequired(client.login_url())

        try:
            validation = client.validate_service_ticket(ticket)
        except SSOError as e:
            self._logger.warning(
                {
                    "event": "sso_ticket_validation_failed",
                    "ticket": redact_ticket(ticket),
                    "error_code": e.code,
                    "error": e.diagnostic,
                }
            )
            self._auth_logger.log_ticket_invalid(
                mode=self._config.mode,
                error_code=e.code,
                error_message=e.diagnostic,
            )
            return NotAuthenticated(e.code, e.diagnostic)

        if self._config.is_proxy_mode:
            failure = self._claim_pgt(validation.pgt_iou, session)
            if failure is not None:
                self._auth_logger.log_ticket_invalid(
                    mode=self._config.mode,
                    error_code=failure.code,
                    error_message=failure.reason,
                )
                return failure

        session.principal = validation.principal
        return Authenticated(validation.principal)

    def _claim_pgt(self, pgt_iou: str | None, session: "GatewaySession") -> NotAuthenticated | None:
        """Move the PGT for pgt_iou from storage into the session.

        Returns:
            None on success, NotAuthenticated otherwise.
        """
        if not pgt_iou:
            return NotAuthenticated("NO_PGT_IOU", "SSO server did not issue a proxy-granting ticket")

        assert self._pgt_storage is not None
        try:
            pgt = self._pgt_storage.pop(pgt_iou)
        except PGTStorageError as e:
            self._logger.error(
                {
                    "event": "pgt_claim_failed",
                    "error_code": e.code,
                    "error": e.diagnostic,
                }
            )
            return NotAuthenticated(e.code, e.diagnostic)

        if pgt is None:
            self._logger.warning(
                {
                    "event": "pgt_not_received",
                    "pgt_iou": redact_ticket(pgt_iou),
                    "message": "PGT callback was not received for the issued pgtIou",
                }
            )
            return NotAuthenticated("PGT_NOT_RECEIVED", "Proxy-granting ticket was not delivered")

        session.pgt = pgt
        return None

    # -------------------------------------------------------------------------
    # Proxy tickets
    # -------------------------------------------------------------------------

    def fetch_proxy_ticket(self, service: str, session: "GatewaySession") -> ProxyTicketResult:
        """Request a proxy ticket for a backend service.

        Args:
            service: Target service identifier.
            session: Gateway session holding the PGT.

        Returns:
            ProxyTicketResult with the ticket or error details.
        """
        pgt = session.pgt
        if not pgt:
            return ProxyTicketResult(
                error_code=ProxyTicketError.default_code,
                diagnostic="No proxy-granting ticket in session",
            )

        try:
            ticket = self._client().request_proxy_ticket(pgt, service)
        except SSOError as e:
            self._logger.warning(
                {
                    "event": "proxy_ticket_request_failed",
                    "target_service": service,
                    "error_code": e.code,
                    "error": e.diagnostic,
                }
            )
            return ProxyTicketResult(error_code=e.code, diagnostic=e.diagnostic)

        return ProxyTicketResult(ticket=ticket)

    # -------------------------------------------------------------------------
    # Logout and PGT callback
    # -------------------------------------------------------------------------

    def logout(self) -> str:
        """Return the SSO logout URL the browser is sent to."""
        self._auth_logger.log_logout()
        return self._client().logout_url()

    def receive_pgt_callback(self, request: "RequestContext") -> bool:
        """Store the PGT delivered by the SSO server.

        The SSO server first calls the callback without parameters to check
        that it is reachable; that call succeeds without storing anything.

        Args:
            request: Callback request with pgtIou and pgtId query parameters.

        Returns:
            True if the callback was accepted.
        """
        self._client()
        if self._pgt_storage is None:
            return self._reject_callback("PGT_CALLBACK_UNEXPECTED", "Gateway is not in proxy mode")

        pgt_iou = request.query("pgtIou")
        pgt_id = request.query("pgtId")

        if not pgt_iou and not pgt_id:
            self._logger.debug({"event": "pgt_callback_reachability_check"})
            return True

        if not pgt_iou or not pgt_id:
            return self._reject_callback("PGT_CALLBACK_INCOMPLETE", "pgtIou and pgtId are both required")
        if not _PGT_IOU_PATTERN.match(pgt_iou) or not _PGT_PATTERN.match(pgt_id):
            return self._reject_callback("PGT_CALLBACK_MALFORMED", "pgtIou or pgtId has an invalid format")

        try:
            self._pgt_storage.save(pgt_iou, pgt_id)
        except PGTStorageError as e:
            return self._reject_callback(e.code, e.diagnostic)

        self._logger.debug({"event": "pgt_stored", "pgt_iou": redact_ticket(pgt_iou)})
        self._auth_logger.log_pgt_received()
        return True

    def _reject_callback(self, code: str, message: str) -> bool:
        self._logger.warning({"event": "pgt_callback_rejected", "error_code": code, "error": message})
        self._auth_logger.log_pgt_callback_failed(error_code=code, error_message=message)
        return False
