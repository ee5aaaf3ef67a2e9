"""Host lifecycle events intercepted by the gateway.

Each event carries a mutable payload. Handlers rewrite the payload in
place and hand it back to the host inside a HookResult.
"""

from __future__ import annotations

__all__ = [
    "Authenticate",
    "BackendConnect",
    "EventKind",
    "InterceptedEvent",
    "LoginFailed",
    "LoginSucceeded",
    "LogoutSucceeded",
    "RenderPage",
    "Startup",
]

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar


class EventKind(str, Enum):
    """Host hooks the gateway handles.

    Attributes:
        STARTUP: Request start, before any session exists.
        RENDER_PAGE: Host is about to render a template.
        AUTHENTICATE: Host needs login credentials.
        LOGIN_SUCCEEDED: Backend accepted the credentials.
        LOGIN_FAILED: Backend rejected the credentials.
        LOGOUT_SUCCEEDED: Host finished its own logout.
        BACKEND_CONNECT: Host is connecting to the mail store.
    """

    STARTUP = "startup"
    RENDER_PAGE = "render_page"
    AUTHENTICATE = "authenticate"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGOUT_SUCCEEDED = "logout_succeeded"
    BACKEND_CONNECT = "backend_connect"


@dataclass
class Startup:
    """Request start. action is the host's `_action` parameter."""

    kind: ClassVar[EventKind] = EventKind.STARTUP

    action: str = ""
    task: str = ""


@dataclass
class RenderPage:
    kind: ClassVar[EventKind] = EventKind.RENDER_PAGE

    template: str = ""


@dataclass
class Authenticate:
    """Credentials the host will present to the backend."""

    kind: ClassVar[EventKind] = EventKind.AUTHENTICATE

    user: str = ""
    password: str = ""


@dataclass
class LoginSucceeded:
    """redirect_params: host parameters of the post-login page (keys without "_")."""

    kind: ClassVar[EventKind] = EventKind.LOGIN_SUCCEEDED

    redirect_params: dict[str, str] = field(default_factory=dict)


@dataclass
class LoginFailed:
    kind: ClassVar[EventKind] = EventKind.LOGIN_FAILED

    user: str = ""


@dataclass
class LogoutSucceeded:
    kind: ClassVar[EventKind] = EventKind.LOGOUT_SUCCEEDED

    user: str = ""


@dataclass
class BackendConnect:
    """Mail store connection attempt.

    Attributes:
        attempt: 1-based connection attempt number.
        host: Backend node identifier. None uses the configured default.
        user: Login name presented to the backend.
        password: Credential presented to the backend. None if unset.
        retry: Whether the host retries after a failed attempt.
    """

    kind: ClassVar[EventKind] = EventKind.BACKEND_CONNECT

    attempt: int = 1
    host: str | None = None
    user: str = ""
    password: str | None = None
    retry: bool = False


InterceptedEvent = (
    Startup
    | RenderPage
    | Authenticate
    | LoginSucceeded
    | LoginFailed
    | LogoutSucceeded
    | BackendConnect
)
