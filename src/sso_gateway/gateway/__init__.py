"""Request lifecycle interception.

Structure:
    context.py       - RequestContext (explicit per-request value)
    events.py        - Closed set of intercepted host events
    result.py        - HookResult and cookie directives returned to the host
    session.py       - GatewaySession over the host session mapping
    ticket_cache.py  - Proxy tickets per backend node
    urls.py          - Absolute service/callback URLs
    error_view.py    - Terminal login failure page
    state_machine.py - AuthGateway, one handler per event kind

AuthGateway lives in state_machine.py and is imported from there; it
depends on the sso package, which depends on the leaf modules here.
"""

from sso_gateway.gateway.context import RequestContext
from sso_gateway.gateway.error_view import ErrorView, login_failed_view
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
from sso_gateway.gateway.ticket_cache import TicketCache
from sso_gateway.gateway.urls import URLBuilder

__all__ = [
    "Authenticate",
    "BackendConnect",
    "CookieDirective",
    "ErrorView",
    "EventKind",
    "GatewaySession",
    "HookResult",
    "InterceptedEvent",
    "LoginFailed",
    "LoginSucceeded",
    "LogoutSucceeded",
    "RenderPage",
    "RequestContext",
    "Startup",
    "TicketCache",
    "URLBuilder",
    "login_failed_view",
]
