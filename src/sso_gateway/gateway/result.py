"""Results returned to the host for each intercepted event."""

from __future__ import annotations

__all__ = ["CookieDirective", "HookResult"]

from dataclasses import dataclass, field
from urllib.parse import quote

from sso_gateway.gateway.error_view import ErrorView
from sso_gateway.gateway.events import InterceptedEvent

_EPOCH = "Thu, 01 Jan 1970 00:00:00 GMT"


@dataclass(frozen=True)
class CookieDirective:
    """A cookie the host must set (or delete) on the response.

    Attributes:
        name: Cookie name.
        value: Cookie value (percent-encoded in the header).
        max_age: Lifetime in seconds. 0 deletes the cookie.
        path: Cookie path.
        secure: Send only over TLS.
        http_only: Hide from scripts.
        same_site: SameSite attribute.
    """

    name: str
    value: str
    max_age: int
    path: str = "/"
    secure: bool = False
    http_only: bool = True
    same_site: str = "Lax"

    @property
    def is_deletion(self) -> bool:
        return self.max_age <= 0

    @classmethod
    def delete(cls, name: str, *, path: str = "/", secure: bool = False) -> "CookieDirective":
        return cls(name=name, value="", max_age=0, path=path, secure=secure)

    def to_header(self) -> str:
        """Set-Cookie header value."""
        parts = [f"{self.name}={quote(self.value, safe='')}", f"Max-Age={max(self.max_age, 0)}"]
        if self.is_deletion:
            parts.append(f"Expires={_EPOCH}")
        parts.append(f"Path={self.path}")
        if self.secure:
            parts.append("Secure")
        if self.http_only:
            parts.append("HttpOnly")
        parts.append(f"SameSite={self.same_site}")
        return "; ".join(parts)


@dataclass
class HookResult:
    """What the host does after the gateway handled an event.

    Attributes:
        event: The event payload, possibly rewritten.
        redirect: Absolute URL to redirect the browser to.
        cookies: Cookies to set or delete on the response.
        terminate: Stop host processing of this request.
        destroy_session: The session was destroyed; host must drop it.
        error_view: Error page to render instead of the host's page.
    """

    event: InterceptedEvent
    redirect: str | None = None
    cookies: list[CookieDirective] = field(default_factory=list)
    terminate: bool = False
    destroy_session: bool = False
    error_view: ErrorView | None = None

    @property
    def passed_through(self) -> bool:
        """True if the host proceeds normally."""
        return not (self.terminate or self.redirect or self.cookies or self.error_view)

    def response_headers(self) -> list[tuple[str, str]]:
        """Headers implementing the redirect and cookie directives."""
        headers = [("Set-Cookie", cookie.to_header()) for cookie in self.cookies]
        if self.redirect:
            headers.append(("Location", self.redirect))
        return headers
