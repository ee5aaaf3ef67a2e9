"""Custom exceptions for sso-gateway.

This module contains all custom exceptions used throughout the package.
Exceptions are organized into three categories:

Configuration Errors (gateway must not start):
    - ConfigurationError: Config file or credential reference is unusable

SSO Errors (recovered inside the gateway, never reach the host):
    - SSOError: Base for ticket exchange failures
    - SSOUnavailableError: SSO server unreachable or answered garbage
    - TicketValidationError: Service ticket rejected by the SSO server
    - ProxyTicketError: Proxy ticket request rejected
    - PGTStorageError: Proxy-granting ticket could not be stored or read

Session Errors:
    - SessionTerminatedError: Session was destroyed earlier in this request

Usage:
    from sso_gateway.exceptions import SSOError, TicketValidationError
"""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "CredentialStorageError",
    "GatewayError",
    "PGTStorageError",
    "ProxyTicketError",
    "SSOError",
    "SSOUnavailableError",
    "SessionTerminatedError",
    "TicketValidationError",
]


class GatewayError(Exception):
    """Base exception for all sso-gateway errors."""


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(GatewayError):
    """Gateway configuration is invalid or incomplete.

    Raised when:
    - A certificate file referenced by the TLS policy is missing or not PEM
    - The static credential references a keychain entry that does not exist
    """


class CredentialStorageError(GatewayError):
    """OS keychain access failed while storing or loading the static credential."""


# =============================================================================
# SSO Errors
# =============================================================================


class SSOError(GatewayError):
    """Base exception for failures in the ticket exchange with the SSO server.

    Attributes:
        code: Error code reported by the SSO server (e.g. "INVALID_TICKET"),
            or a local code for transport/parse failures.
        diagnostic: Human-readable detail from the SSO server or transport.
    """

    default_code: str = "SSO_ERROR"

    def __init__(self, diagnostic: str, *, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.diagnostic = diagnostic
        super().__init__(f"[{self.code}] {diagnostic}")


class SSOUnavailableError(SSOError):
    """SSO server could not be reached or returned an unparseable response."""

    default_code = "SSO_UNAVAILABLE"


class TicketValidationError(SSOError):
    """Service ticket validation failed (authenticationFailure response)."""

    default_code = "INVALID_TICKET"


class ProxyTicketError(SSOError):
    """Proxy ticket request failed (proxyFailure response or no PGT in session)."""

    default_code = "PROXY_TICKET_FAILED"


class PGTStorageError(SSOError):
    """Proxy-granting ticket storage could not be written or read."""

    default_code = "PGT_STORAGE_FAILED"


# =============================================================================
# Session Errors
# =============================================================================


class SessionTerminatedError(GatewayError):
    """The session was destroyed earlier in this request.

    Session destruction is terminal: no gateway logic may run against a
    destroyed session within the same request.
    """
