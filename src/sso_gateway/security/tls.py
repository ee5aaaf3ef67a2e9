"""TLS validation policy for connections to the SSO server.

Turns TLSValidationConfig into the `verify` argument of httpx clients,
validates certificate files and warns about upcoming expiry.
"""

from __future__ import annotations

__all__ = [
    "build_verify",
    "get_certificate_expiry_info",
    "validate_tls_config",
]

import ssl
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography import x509

from sso_gateway.constants import CERT_EXPIRY_CRITICAL_DAYS, CERT_EXPIRY_WARNING_DAYS
from sso_gateway.exceptions import ConfigurationError
from sso_gateway.telemetry.system.system_logger import get_system_logger

if TYPE_CHECKING:
    from sso_gateway.config import TLSValidationConfig


def build_verify(tls: "TLSValidationConfig") -> ssl.SSLContext | bool:
    """Build the httpx `verify` value for the configured policy.

    - "none": False (certificate not checked)
    - "self": SSL context trusting only the server's own certificate
    - "ca": SSL context trusting the configured CA bundle

    Args:
        tls: TLS validation configuration.

    Returns:
        False or a configured SSLContext.

    Raises:
        ConfigurationError: If the certificate file is missing, not PEM,
            or already expired.
    """
    if tls.mode == "none":
        get_system_logger().warning(
            {
                "event": "sso_tls_validation_disabled",
                "message": "SSO server certificate validation is disabled",
            }
        )
        return False

    assert tls.cert_path is not None  # enforced by TLSValidationConfig
    cert_path = Path(tls.cert_path).expanduser().resolve()
    if not cert_path.exists():
        raise ConfigurationError(f"SSO server certificate not found: {cert_path}")

    _load_certificate(cert_path)
    _check_certificate_expiry(cert_path)

    try:
        # A self-signed server certificate is its own trust anchor
        return ssl.create_default_context(cafile=str(cert_path))
    except ssl.SSLError as e:
        raise ConfigurationError(f"Invalid SSO server certificate file {cert_path}: {e}") from e


def _load_certificate(cert_path: Path) -> x509.Certificate:
    """Parse the first PEM certificate in the file.

    Raises:
        ConfigurationError: If the file is not a PEM certificate.
    """
    try:
        return x509.load_pem_x509_certificate(cert_path.read_bytes())
    except (ValueError, OSError) as e:
        raise ConfigurationError(f"Not a PEM certificate: {cert_path}: {e}") from e


def _check_certificate_expiry(cert_path: Path) -> int:
    """Check if certificate is expired or expiring soon.

    Logs a warning if certificate expires within CERT_EXPIRY_WARNING_DAYS.
    Logs a critical warning if expires within CERT_EXPIRY_CRITICAL_DAYS.

    Args:
        cert_path: Path to certificate file.

    Returns:
        Days until expiry.

    Raises:
        ConfigurationError: If certificate is already expired.
    """
    cert = _load_certificate(cert_path)
    expires_at = cert.not_valid_after_utc
    days_until_expiry = (expires_at - datetime.now(timezone.utc)).days

    if days_until_expiry < 0:
        raise ConfigurationError(
            f"SSO server certificate has expired (expired {-days_until_expiry} days ago). "
            f"Certificate: {cert_path}"
        )

    logger = get_system_logger()
    if days_until_expiry <= CERT_EXPIRY_CRITICAL_DAYS:
        logger.critical(
            {
                "event": "sso_certificate_expiring",
                "days_until_expiry": days_until_expiry,
                "cert_path": str(cert_path),
                "message": f"SSO certificate expires in {days_until_expiry} days. Renew immediately!",
            }
        )
    elif days_until_expiry <= CERT_EXPIRY_WARNING_DAYS:
        logger.warning(
            {
                "event": "sso_certificate_expiring",
                "days_until_expiry": days_until_expiry,
                "cert_path": str(cert_path),
                "message": f"SSO certificate expires in {days_until_expiry} days",
            }
        )

    return days_until_expiry


def get_certificate_expiry_info(cert_path: str | Path) -> dict[str, str | int]:
    """Get certificate expiry information for display.

    Args:
        cert_path: Path to certificate file.

    Returns:
        Dictionary with expiry info:
        - expires_at: ISO format expiry date
        - days_until_expiry: Days remaining (negative if expired)
        - status: "valid", "warning", "critical", or "expired"
        - error: Error message if parsing failed
    """
    path = Path(cert_path).expanduser().resolve()

    if not path.exists():
        return {"error": f"Certificate not found: {path}"}

    try:
        cert = _load_certificate(path)
    except ConfigurationError as e:
        return {"error": str(e)}

    expires_at = cert.not_valid_after_utc
    days_until_expiry = (expires_at - datetime.now(timezone.utc)).days

    if days_until_expiry < 0:
        status = "expired"
    elif days_until_expiry <= CERT_EXPIRY_CRITICAL_DAYS:
        status = "critical"
    elif days_until_expiry <= CERT_EXPIRY_WARNING_DAYS:
        status = "warning"
    else:
        status = "valid"

    return {
        "expires_at": expires_at.isoformat(),
        "days_until_expiry": days_until_expiry,
        "status": status,
    }


def validate_tls_config(tls: "TLSValidationConfig") -> list[str]:
    """Validate the TLS policy for user feedback (CLI `config validate`).

    Returns:
        List of error messages. Empty list means the policy is usable.
    """
    if tls.mode == "none" or tls.cert_path is None:
        return []

    info = get_certificate_expiry_info(tls.cert_path)
    if "error" in info:
        return [str(info["error"])]
    if info["status"] == "expired":
        return [f"Certificate has expired ({abs(int(info['days_until_expiry']))} days ago)"]
    return []
