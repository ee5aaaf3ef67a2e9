"""Tests for the per-session proxy ticket cache."""

import threading

from sso_gateway.gateway.ticket_cache import TicketCache


class TestTicketCache:
    """Tests for TicketCache."""

    def test_empty_at_start(self) -> None:
        """Given a new cache, nothing is cached."""
        cache = TicketCache()

        assert len(cache) == 0
        assert "imap1" not in cache
        assert cache.get("imap1") is None

    def test_entries_are_per_host(self) -> None:
        """Given tickets for two hosts, each host gets its own ticket."""
        cache = TicketCache()

        cache.put("imap1", "PT-1-a")
        cache.put("imap2", "PT-2-b")

        assert cache.get("imap1") == "PT-1-a"
        assert cache.get("imap2") == "PT-2-b"
        assert len(cache) == 2

    def test_put_overwrites(self) -> None:
        """Given a second ticket for the same host, the last write wins."""
        cache = TicketCache()

        cache.put("imap1", "PT-1-a")
        cache.put("imap1", "PT-1-b")

        assert cache.get("imap1") == "PT-1-b"
        assert len(cache) == 1

    def test_writes_through_to_backing_mapping(self) -> None:
        """Given a backing mapping, entries are stored in it."""
        backing: dict[str, str] = {}
        cache = TicketCache(backing)

        cache.put("imap1", "PT-1-a")

        assert backing == {"imap1": "PT-1-a"}
        assert TicketCache(backing).get("imap1") == "PT-1-a"

    def test_concurrent_writers_leave_one_ticket(self) -> None:
        """Given concurrent writers for one host, exactly one of their tickets remains."""
        cache = TicketCache()
        tickets = [f"PT-{i}" for i in range(20)]
        threads = [threading.Thread(target=cache.put, args=("imap1", t)) for t in tickets]

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 1
        assert cache.get("imap1") in tickets
