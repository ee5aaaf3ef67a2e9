"""Pydantic models for structured log events."""

from sso_gateway.telemetry.models.audit import AuthEvent, AuthEventType

__all__ = [
    "AuthEvent",
    "AuthEventType",
]
