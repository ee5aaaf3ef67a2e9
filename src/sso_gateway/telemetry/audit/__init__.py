"""Authentication audit logging (audit/auth.jsonl)."""

from sso_gateway.telemetry.audit.auth_logger import AuthLogger, create_auth_logger

__all__ = [
    "AuthLogger",
    "create_auth_logger",
]
