"""Request context passed explicitly to every gateway handler.

The host builds one RequestContext per HTTP request. Nothing in the
gateway reads request data from globals.
"""

from __future__ import annotations

__all__ = ["RequestContext"]

from collections.abc import Mapping
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import Any
from urllib.parse import parse_qsl

from sso_gateway.constants import FORWARDED_PROTO_HEADER


def _first_values(query: str) -> dict[str, str]:
    """Parse a query string, keeping the first value of repeated keys."""
    params: dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(key, value)
    return params


@dataclass(frozen=True)
class RequestContext:
    """Immutable view of one HTTP request.

    Attributes:
        method: HTTP method (upper case).
        query_string: Raw query string without the leading "?".
        query_params: Parsed query parameters (first value wins).
        form_params: Parsed urlencoded POST body parameters.
        cookies: Request cookies.
        headers: Request headers with lower-case names.
        server_name: Host name the request was addressed to.
        server_port: Port the request was received on.
        https: True if the request arrived over TLS at this server.
        request_uri: Request path including the query string.
    """

    method: str = "GET"
    query_string: str = ""
    query_params: Mapping[str, str] = field(default_factory=dict)
    form_params: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    server_name: str = "localhost"
    server_port: int = 80
    https: bool = False
    request_uri: str = "/"

    @property
    def is_secure(self) -> bool:
        """True if the client connection is TLS, directly or via a terminating proxy."""
        if self.https:
            return True
        return self.header(FORWARDED_PROTO_HEADER, "").strip().lower() == "https"

    def query(self, name: str, default: str | None = None) -> str | None:
        return self.query_params.get(name, default)

    def form(self, name: str, default: str | None = None) -> str | None:
        return self.form_params.get(name, default)

    def cookie(self, name: str, default: str | None = None) -> str | None:
        return self.cookies.get(name, default)

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    @classmethod
    def from_query(cls, query_string: str, **kwargs: Any) -> "RequestContext":
        """Build a context whose query_params are parsed from query_string."""
        return cls(query_string=query_string, query_params=_first_values(query_string), **kwargs)

    @classmethod
    def from_wsgi_environ(cls, environ: Mapping[str, Any]) -> "RequestContext":
        """Build a context from a WSGI environ (PEP 3333).

        Reads the body of urlencoded POST requests from wsgi.input.

        Args:
            environ: WSGI environ dictionary.

        Returns:
            RequestContext for the request.
        """
        method = str(environ.get("REQUEST_METHOD", "GET")).upper()
        query_string = str(environ.get("QUERY_STRING", ""))

        headers = {
            key[5:].replace("_", "-").lower(): str(value)
            for key, value in environ.items()
            if key.startswith("HTTP_")
        }
        if "CONTENT_TYPE" in environ:
            headers["content-type"] = str(environ["CONTENT_TYPE"])

        cookies: dict[str, str] = {}
        raw_cookie = headers.get("cookie", "")
        if raw_cookie:
            jar: SimpleCookie = SimpleCookie()
            try:
                jar.load(raw_cookie)
            except CookieError:
                jar = SimpleCookie()
            cookies = {name: morsel.value for name, morsel in jar.items()}

        form_params: dict[str, str] = {}
        content_type = headers.get("content-type", "")
        if method == "POST" and content_type.startswith("application/x-www-form-urlencoded"):
            try:
                length = int(environ.get("CONTENT_LENGTH") or 0)
            except ValueError:
                length = 0
            stream = environ.get("wsgi.input")
            if length > 0 and stream is not None:
                body = stream.read(length)
                form_params = _first_values(body.decode("utf-8", errors="replace"))

        request_uri = environ.get("REQUEST_URI")
        if not request_uri:
            request_uri = f"{environ.get('SCRIPT_NAME', '')}{environ.get('PATH_INFO', '')}" or "/"
            if query_string:
                request_uri = f"{request_uri}?{query_string}"

        https = str(environ.get("HTTPS", "")).lower() in ("on", "1") or (
            environ.get("wsgi.url_scheme") == "https"
        )

        return cls(
            method=method,
            query_string=query_string,
            query_params=_first_values(query_string),
            form_params=form_params,
            cookies=cookies,
            headers=headers,
            server_name=str(environ.get("SERVER_NAME", "localhost")),
            server_port=int(environ.get("SERVER_PORT") or (443 if https else 80)),
            https=https,
            request_uri=str(request_uri),
        )
