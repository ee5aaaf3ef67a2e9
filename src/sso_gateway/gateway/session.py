"""Gateway state inside the host's session.

The host owns session storage. GatewaySession wraps the host's session
mapping and keeps gateway state under namespaced keys.
"""

from __future__ import annotations

__all__ = ["GatewaySession"]

from collections.abc import MutableMapping
from typing import Any

from sso_gateway.constants import (
    SESSION_DESTROYED_KEY,
    SESSION_PGT_KEY,
    SESSION_PRINCIPAL_KEY,
    SESSION_TICKETS_KEY,
)
from sso_gateway.exceptions import SessionTerminatedError
from sso_gateway.gateway.ticket_cache import TicketCache


class GatewaySession:
    """Per-user gateway state backed by the host session mapping.

    Holds the authenticated principal, the proxy-granting ticket (proxy
    mode) and the proxy ticket cache. destroy() clears all of it and is
    terminal: every accessor raises SessionTerminatedError afterwards.
    """

    def __init__(self, data: MutableMapping[str, Any] | None = None) -> None:
        """Initialize session wrapper.

        Args:
            data: Host session mapping. A new dict is used if None.
        """
        self._data: MutableMapping[str, Any] = data if data is not None else {}
        self._destroyed = False
        self._tickets: TicketCache | None = None

    @property
    def destroyed(self) -> bool:
        """True once destroy() ran on this wrapper or any other over the same mapping."""
        return self._destroyed or bool(self._data.get(SESSION_DESTROYED_KEY))

    def ensure_active(self) -> None:
        """Raise SessionTerminatedError if the session was destroyed."""
        if self.destroyed:
            raise SessionTerminatedError("Session was destroyed earlier in this request")

    @property
    def principal(self) -> str | None:
        self.ensure_active()
        return self._data.get(SESSION_PRINCIPAL_KEY)

    @principal.setter
    def principal(self, value: str) -> None:
        self.ensure_active()
        self._data[SESSION_PRINCIPAL_KEY] = value

    @property
    def pgt(self) -> str | None:
        self.ensure_active()
        return self._data.get(SESSION_PGT_KEY)

    @pgt.setter
    def pgt(self, value: str) -> None:
        self.ensure_active()
        self._data[SESSION_PGT_KEY] = value

    @property
    def tickets(self) -> TicketCache:
        """Proxy ticket cache stored in the session mapping."""
        self.ensure_active()
        if self._tickets is None:
            backing = self._data.get(SESSION_TICKETS_KEY)
            if not isinstance(backing, MutableMapping):
                backing = {}
                self._data[SESSION_TICKETS_KEY] = backing
            self._tickets = TicketCache(backing)
        return self._tickets

    def destroy(self) -> None:
        """Clear the host session, leaving only the destroyed marker.

        The marker lives in the host mapping, so a later handle() call that
        wraps the same mapping again still sees a terminated session.
        """
        if self.destroyed:
            return
        self._data.clear()
        self._data[SESSION_DESTROYED_KEY] = True
        self._tickets = None
        self._destroyed = True
