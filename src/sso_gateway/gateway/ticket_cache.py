"""Per-session cache of proxy tickets keyed by backend node.

A mail store that caches proxy tickets accepts the same ticket again on a
fresh connection, which saves an SSO round-trip per request. Entries are
never evicted; they live as long as the session.
"""

from __future__ import annotations

__all__ = ["TicketCache"]

import threading
from collections.abc import MutableMapping
from typing import Any


class TicketCache:
    """Mapping of backend node identifier to proxy ticket.

    Backed by a plain dict, or by a mapping stored inside the host's session
    so cached tickets survive across requests of the same session.

    Writes are serialized by a lock. Concurrent writers for the same host
    resolve last-writer-wins.
    """

    def __init__(self, backing: MutableMapping[str, str] | None = None) -> None:
        self._tickets: MutableMapping[str, str] = backing if backing is not None else {}
        self._lock = threading.Lock()

    def get(self, host: str) -> str | None:
        return self._tickets.get(host)

    def put(self, host: str, ticket: str) -> None:
        with self._lock:
            self._tickets[host] = ticket

    def hosts(self) -> list[str]:
        return list(self._tickets)

    def __contains__(self, host: Any) -> bool:
        return bool(self._tickets.get(host))

    def __len__(self) -> int:
        return len(self._tickets)

    def __repr__(self) -> str:
        return f"TicketCache(hosts={self.hosts()!r})"
