"""Sanitization and serialization helpers for audit logging."""

from __future__ import annotations

__all__ = [
    "hash_sensitive_id",
    "redact_ticket",
    "serialize_audit_event",
]

import hashlib
from typing import Any

from pydantic import BaseModel


def serialize_audit_event(event: BaseModel) -> dict[str, Any]:
    """Serialize a Pydantic event model for audit logging.

    Excludes the 'time' field (added by ISO8601Formatter at log time)
    and None values for cleaner logs.

    Args:
        event: Pydantic model instance (e.g., AuthEvent).

    Returns:
        dict: Serialized event data ready for logging.
    """
    return event.model_dump(mode="json", exclude={"time"}, exclude_none=True)


def hash_sensitive_id(value: str, prefix_length: int = 8) -> str:
    """Hash a sensitive ID for logging while preserving some identifiability.

    The hash is deterministic, so the same principal always produces the
    same output and log lines can be correlated without exposing the name.

    Args:
        value: The sensitive ID to hash (e.g., SSO principal).
        prefix_length: Number of hex characters to keep (default: 8).

    Returns:
        str: Hashed value in format "sha256:<prefix>" (e.g., "sha256:a1b2c3d4").
    """
    if not value:
        return "sha256:empty"

    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()
    return f"sha256:{digest[:prefix_length]}"


def redact_ticket(ticket: str, visible: int = 6) -> str:
    """Keep only the ticket type prefix and a few characters.

    Example:
        >>> redact_ticket("PT-1-abcdefghijklmnop")
        'PT-1-a...'
    """
    if len(ticket) <= visible:
        return "***"
    return f"{ticket[:visible]}..."
