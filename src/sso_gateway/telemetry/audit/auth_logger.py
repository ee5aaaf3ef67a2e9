"""Authentication audit logger.

Logs authentication events to audit/auth.jsonl:
- SSO redirects and service ticket validation outcomes
- Backend login success/failure and session destruction
- Logout
- PGT callbacks and proxy ticket fetches (issued, reused, failed)

Principals are hashed before writing. Tickets are never written.

If the audit file cannot be written, the event goes to the system logger
instead. Audit problems never break a user's request.
"""

from __future__ import annotations

__all__ = [
    "AuthLogger",
    "create_auth_logger",
]

import logging
from pathlib import Path
from typing import Literal

from sso_gateway.constants import APP_NAME
from sso_gateway.telemetry.models.audit import AuthEvent, AuthEventType
from sso_gateway.telemetry.system.system_logger import get_system_logger
from sso_gateway.utils.logging.logger_setup import setup_jsonl_logger
from sso_gateway.utils.logging.logging_helpers import (
    hash_sensitive_id,
    serialize_audit_event,
)

Mode = Literal["direct", "proxy"]


class AuthLogger:
    """Audit logger for authentication events.

    Usage:
        logger = create_auth_logger(get_auth_log_path(config))
        logger.log_login_succeeded(principal="jdoe", mode="proxy")
    """

    def __init__(self, logger: logging.Logger | None) -> None:
        """Initialize auth logger.

        Args:
            logger: Configured JSONL logger, or None to send events to the
                system logger only (tests, misconfigured log dir).
        """
        self._logger = logger
        self._system_logger = get_system_logger()

    def _log_event(self, event: AuthEvent) -> bool:
        """Write an auth event, falling back to the system logger.

        Returns:
            True if logged to auth.jsonl, False if fallback was used.
        """
        event_data = serialize_audit_event(event)
        if event_data.get("principal"):
            event_data["principal"] = hash_sensitive_id(event_data["principal"])

        if self._logger is not None:
            try:
                self._logger.info(event_data)
                return True
            except (OSError, ValueError) as e:
                self._system_logger.error(
                    {
                        "event": "auth_log_write_failed",
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                )

        level = logging.INFO if event.status == "Success" else logging.WARNING
        self._system_logger.log(level, {"source_file": "auth.jsonl", **event_data})
        return False

    def log(
        self,
        event_type: AuthEventType,
        status: Literal["Success", "Failure"],
        **fields: object,
    ) -> bool:
        """Log an arbitrary auth event (fields must exist on AuthEvent)."""
        return self._log_event(AuthEvent(event_type=event_type, status=status, **fields))

    def log_sso_redirect(self, *, mode: Mode) -> bool:
        """Log that the browser was sent to the SSO login page."""
        return self.log("sso_redirect", "Success", mode=mode)

    def log_ticket_invalid(
        self,
        *,
        mode: Mode,
        error_code: str,
        error_message: str,
    ) -> bool:
        """Log a rejected service ticket or failed validation round-trip."""
        return self.log(
            "ticket_invalid",
            "Failure",
            mode=mode,
            error_code=error_code,
            error_message=error_message,
        )

    def log_login_succeeded(self, *, principal: str, mode: Mode) -> bool:
        """Log credentials handed to the host for a verified principal."""
        return self.log("login_succeeded", "Success", principal=principal, mode=mode)

    def log_login_failed(self, *, principal: str | None) -> bool:
        """Log a backend login failure (credential rejected by the mail store)."""
        return self.log(
            "login_failed",
            "Failure",
            principal=principal,
            message="Backend rejected forwarded credentials",
        )

    def log_session_destroyed(self, *, principal: str | None, reason: str) -> bool:
        """Log a session kill."""
        return self.log("session_destroyed", "Success", principal=principal, message=reason)

    def log_logout(self, *, principal: str | None = None) -> bool:
        """Log a logout redirect to the SSO server."""
        return self.log("logout", "Success", principal=principal)

    def log_pgt_received(self) -> bool:
        """Log a proxy-granting ticket delivered to the callback."""
        return self.log("pgt_received", "Success")

    def log_pgt_callback_failed(self, *, error_code: str, error_message: str) -> bool:
        """Log a PGT callback that could not be processed."""
        return self.log(
            "pgt_callback_failed",
            "Failure",
            error_code=error_code,
            error_message=error_message,
        )

    def log_proxy_ticket(
        self,
        *,
        principal: str | None,
        backend_host: str,
        attempt: int,
        target_service: str,
        reused: bool,
    ) -> bool:
        """Log a proxy ticket used as backend credential."""
        return self.log(
            "proxy_ticket_reused" if reused else "proxy_ticket_issued",
            "Success",
            principal=principal,
            backend_host=backend_host,
            attempt=attempt,
            target_service=target_service,
        )

    def log_proxy_ticket_failed(
        self,
        *,
        principal: str | None,
        backend_host: str,
        attempt: int,
        target_service: str,
        error_code: str,
        error_message: str,
    ) -> bool:
        """Log a failed proxy ticket fetch."""
        return self.log(
            "proxy_ticket_failed",
            "Failure",
            principal=principal,
            backend_host=backend_host,
            attempt=attempt,
            target_service=target_service,
            error_code=error_code,
            error_message=error_message,
        )


def create_auth_logger(log_path: Path | None, log_level: int = logging.INFO) -> AuthLogger:
    """Create an AuthLogger writing to log_path.

    Args:
        log_path: Path to audit/auth.jsonl, or None to log via the system logger.
        log_level: Logging level for the audit file.

    Returns:
        AuthLogger instance. If the log directory cannot be created the
        logger falls back to the system logger and a warning is emitted.
    """
    if log_path is None:
        return AuthLogger(None)

    try:
        logger = setup_jsonl_logger(f"{APP_NAME}.audit.auth", log_path, log_level)
    except OSError as e:
        get_system_logger().warning(
            {
                "event": "auth_log_unavailable",
                "path": str(log_path),
                "error": str(e),
                "message": f"Auth audit log unavailable, using system log: {e}",
            }
        )
        return AuthLogger(None)

    return AuthLogger(logger)
