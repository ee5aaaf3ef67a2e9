"""Absolute URLs back to this gateway for the SSO server.

The SSO server needs fully-qualified service and callback URLs. They are
rebuilt from the current request so that the gateway works behind any
host name, port or path without extra configuration.
"""

from __future__ import annotations

__all__ = ["URLBuilder", "prefixed_params"]

from collections.abc import Mapping
from urllib.parse import quote_plus

from sso_gateway.constants import PARAM_PREFIX
from sso_gateway.gateway.context import RequestContext

_DEFAULT_PORTS = {"http": 80, "https": 443}


def prefixed_params(params: Mapping[str, str | None]) -> list[tuple[str, str]]:
    """Host-namespaced query pairs in reverse declaration order.

    Keys get the "_" prefix unless they already have it. Empty values
    are dropped.

    Example:
        >>> prefixed_params({"action": "login", "task": "mail"})
        [('_task', 'mail'), ('_action', 'login')]
    """
    pairs = []
    for key, value in reversed(list(params.items())):
        if not value:
            continue
        name = key if key.startswith(PARAM_PREFIX) else f"{PARAM_PREFIX}{key}"
        pairs.append((name, value))
    return pairs


class URLBuilder:
    """Builds absolute URLs to the current host application path.

    Usage:
        url = URLBuilder().build(request, {"action": "login", "task": "mail"})
        # https://mail.example.edu/webmail/?_task=mail&_action=login
    """

    def scheme(self, request: RequestContext) -> str:
        return "https" if request.is_secure else "http"

    def origin(self, request: RequestContext) -> str:
        """Scheme, host and non-default port of the request."""
        scheme = self.scheme(request)
        port = request.server_port
        # Forwarded TLS arrives on the proxy's plain port; the public port is 443
        if scheme == "https" and not request.https and port == _DEFAULT_PORTS["http"]:
            port = _DEFAULT_PORTS["https"]
        suffix = "" if port == _DEFAULT_PORTS[scheme] else f":{port}"
        return f"{scheme}://{request.server_name}{suffix}"

    def path(self, request: RequestContext) -> str:
        """Request URI without its query string."""
        return request.request_uri.split("?", 1)[0] or "/"

    def build(self, request: RequestContext, params: Mapping[str, str | None]) -> str:
        """Build an absolute URL to this application with host parameters.

        Args:
            request: Current request.
            params: Parameters in declaration order. Keys are "_"-prefixed
                and appended in reverse order. Empty values are skipped.

        Returns:
            Absolute URL.
        """
        query = "&".join(
            f"{quote_plus(key)}={quote_plus(value)}" for key, value in prefixed_params(params)
        )
        url = f"{self.origin(request)}{self.path(request)}"
        return f"{url}?{query}" if query else url
