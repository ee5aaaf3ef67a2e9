"""Pydantic models for the auth audit log (audit/auth.jsonl).

The 'time' field is Optional[str] = None because model instances are created
without timestamps; ISO8601Formatter adds the timestamp during serialization.
"""

from __future__ import annotations

__all__ = [
    "AuthEvent",
    "AuthEventType",
]

from typing import Literal

from pydantic import BaseModel, Field

AuthEventType = Literal[
    "sso_redirect",
    "login_succeeded",
    "login_failed",
    "ticket_invalid",
    "logout",
    "pgt_received",
    "pgt_callback_failed",
    "proxy_ticket_issued",
    "proxy_ticket_reused",
    "proxy_ticket_failed",
    "session_destroyed",
]


class AuthEvent(BaseModel):
    """One authentication log entry (audit/auth.jsonl).

    Note: 'time' is None when created, populated by ISO8601Formatter during logging.
    """

    time: str | None = Field(
        None,
        description="ISO 8601 timestamp, added by formatter during serialization",
    )

    event_type: AuthEventType
    status: Literal["Success", "Failure"]

    # Hashed before writing (see hash_sensitive_id)
    principal: str | None = None

    mode: Literal["direct", "proxy"] | None = None
    backend_host: str | None = None
    attempt: int | None = None
    target_service: str | None = None

    # SSO error details
    error_code: str | None = None
    error_message: str | None = None

    message: str | None = None
