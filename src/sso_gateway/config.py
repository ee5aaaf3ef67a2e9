"""Gateway configuration for sso-gateway.

Defines configuration models for the SSO server, TLS validation, operating
mode, the return-URL cookie and logging. The config is loaded once at startup
and is immutable thereafter (frozen models). User creates config via
`sso-gateway init`. Config is stored at the OS-appropriate location (via
click.get_app_dir).

Example usage:
    # Load from config file
    config = GatewayConfig.load_from_files(config_path)

    # Save new configuration
    config.save_to_file(config_path)
"""

from __future__ import annotations

__all__ = [
    "DirectModeConfig",
    "GatewayConfig",
    "LoggingConfig",
    "OperatingMode",
    "ProxyModeConfig",
    "ReturnURLCookieConfig",
    "SSOServerConfig",
    "TLSValidationConfig",
    "TLSValidationMode",
]

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from sso_gateway.constants import (
    APP_NAME,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_RETURN_URL_COOKIE,
    DEFAULT_RETURN_URL_MAX_AGE_SECONDS,
    DEFAULT_SSO_BASE_PATH,
    DEFAULT_SSO_PORT,
    MAX_HTTP_TIMEOUT_SECONDS,
    MAX_RETURN_URL_MAX_AGE_SECONDS,
    MIN_HTTP_TIMEOUT_SECONDS,
    MIN_RETURN_URL_MAX_AGE_SECONDS,
)
from sso_gateway.utils.file_helpers import (
    load_validated_json,
    require_file_exists,
    write_private_file,
)

OperatingMode = Literal["direct", "proxy"]
TLSValidationMode = Literal["none", "self", "ca"]


# =============================================================================
# SSO Server
# =============================================================================


class SSOServerConfig(BaseModel):
    """CAS server location.

    Attributes:
        hostname: SSO server hostname (e.g., "sso.example.edu").
        port: HTTPS port of the SSO server.
        base_path: Path prefix of the CAS endpoints (e.g., "/cas").
        login_url: Full login URL override. Defaults to <base_url>/login.
        logout_url: Full logout URL override. Defaults to <base_url>/logout.
    """

    model_config = ConfigDict(frozen=True)

    hostname: str = Field(min_length=1)
    port: int = Field(default=DEFAULT_SSO_PORT, ge=1, le=65535)
    base_path: str = Field(default=DEFAULT_SSO_BASE_PATH)
    login_url: str | None = Field(default=None, pattern=r"^https?://")
    logout_url: str | None = Field(default=None, pattern=r"^https?://")

    @property
    def base_url(self) -> str:
        """Base URL of the CAS endpoints (port omitted when 443)."""
        port = "" if self.port == 443 else f":{self.port}"
        path = self.base_path.strip("/")
        path = f"/{path}" if path else ""
        return f"https://{self.hostname}{port}{path}"


class TLSValidationConfig(BaseModel):
    """How the gateway validates the SSO server's TLS certificate.

    Modes:
    - "none": No validation (development only, logged as a warning)
    - "self": Trust exactly the configured self-signed server certificate
    - "ca": Validate against the configured CA certificate bundle

    Attributes:
        mode: Validation mode.
        cert_path: PEM file (server certificate or CA bundle). Required
            unless mode is "none".
    """

    model_config = ConfigDict(frozen=True)

    mode: TLSValidationMode = "none"
    cert_path: str | None = None

    @model_validator(mode="after")
    def _require_cert_path(self) -> "TLSValidationConfig":
        if self.mode != "none" and not self.cert_path:
            raise ValueError(f"cert_path is required when TLS validation mode is '{self.mode}'")
        return self


# =============================================================================
# Operating modes
# =============================================================================


class ProxyModeConfig(BaseModel):
    """Proxy mode: the gateway acts as a CAS proxy towards the mail store.

    Attributes:
        consumer_service: Service name the proxy tickets are issued for
            (the mail store's CAS service identifier, e.g. "imap://mail.example.edu").
        backend_caching: Whether the mail store caches proxy tickets, so a
            ticket may be presented more than once on first connection attempts.
        backend_node: Default backend node identifier used as the ticket cache
            key when the host does not name the target node.
        pgt_dir: Directory for proxy-granting tickets delivered to the callback.
            Defaults to <app_dir>/pgt.
    """

    model_config = ConfigDict(frozen=True)

    consumer_service: str = Field(min_length=1)
    backend_caching: bool = False
    backend_node: str | None = None
    pgt_dir: str | None = None


class DirectModeConfig(BaseModel):
    """Direct mode: a static credential is forwarded to the mail store.

    The mail store must trust the gateway (e.g. a master password). Prefer
    credential_key so the secret stays in the OS keychain, not in the file.

    Attributes:
        password: Static backend password stored in the config file.
        credential_key: Keychain key for the static backend password.
    """

    model_config = ConfigDict(frozen=True)

    password: SecretStr | None = None
    credential_key: str | None = Field(
        default=None,
        description="Keychain key for the static backend credential",
    )

    @model_validator(mode="after")
    def _single_source(self) -> "DirectModeConfig":
        if self.password is not None and self.credential_key is not None:
            raise ValueError("Set either password or credential_key, not both")
        return self


# =============================================================================
# Cookie and logging
# =============================================================================


class ReturnURLCookieConfig(BaseModel):
    """Cookie carrying the pre-login return URL.

    Attributes:
        name: Cookie name.
        max_age_seconds: Lifetime of the cookie (30-3600s). The cookie is
            also deleted as soon as it is consumed after login.
        path: Cookie path.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default=DEFAULT_RETURN_URL_COOKIE, min_length=1, pattern=r"^[A-Za-z0-9_\-]+$")
    max_age_seconds: int = Field(
        default=DEFAULT_RETURN_URL_MAX_AGE_SECONDS,
        ge=MIN_RETURN_URL_MAX_AGE_SECONDS,
        le=MAX_RETURN_URL_MAX_AGE_SECONDS,
    )
    path: str = "/"


class LoggingConfig(BaseModel):
    """Logging configuration settings.

    Logs are stored in <log_dir>/sso-gateway/:
        <log_dir>/
        └── sso-gateway/
            ├── system/
            │   └── system.jsonl     # WARNING and above
            └── audit/
                └── auth.jsonl       # authentication audit trail

    Attributes:
        log_dir: Base directory for logs. None uses the platform log dir.
        log_level: Logging level (DEBUG or INFO).
    """

    model_config = ConfigDict(frozen=True)

    log_dir: str | None = None
    log_level: Literal["DEBUG", "INFO"] = "INFO"


# =============================================================================
# Gateway configuration
# =============================================================================


class GatewayConfig(BaseModel):
    """Main configuration for sso-gateway.

    Attributes:
        sso: SSO (CAS) server location.
        mode: "direct" forwards a static credential, "proxy" forwards proxy tickets.
        tls: TLS validation policy for the SSO server.
        proxy: Proxy mode settings. Required when mode is "proxy".
        direct: Direct mode settings (static credential).
        return_url_cookie: Pre-login return URL cookie settings.
        http_timeout_seconds: Timeout for SSO server round-trips (1-120s).
        logging: Logging configuration.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    sso: SSOServerConfig
    mode: OperatingMode = "direct"
    tls: TLSValidationConfig = Field(default_factory=TLSValidationConfig)
    proxy: ProxyModeConfig | None = None
    direct: DirectModeConfig = Field(default_factory=DirectModeConfig)
    return_url_cookie: ReturnURLCookieConfig = Field(default_factory=ReturnURLCookieConfig)
    http_timeout_seconds: int = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        ge=MIN_HTTP_TIMEOUT_SECONDS,
        le=MAX_HTTP_TIMEOUT_SECONDS,
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _require_proxy_settings(self) -> "GatewayConfig":
        if self.mode == "proxy" and self.proxy is None:
            raise ValueError("proxy settings are required when mode is 'proxy'")
        return self

    @property
    def is_proxy_mode(self) -> bool:
        """True when proxy tickets are forwarded to the backend."""
        return self.mode == "proxy"

    def to_file_dict(self) -> dict[str, object]:
        """Serialize for writing to disk (secret values included)."""
        data = self.model_dump(mode="json")
        if self.direct.password is not None:
            direct = data["direct"]
            assert isinstance(direct, dict)
            direct["password"] = self.direct.password.get_secret_value()
        return data

    def save_to_file(self, config_path: Path) -> None:
        """Write the configuration as indented JSON, owner-only and atomically.

        Args:
            config_path: Path where the config JSON file should be saved.
        """
        write_private_file(config_path, json.dumps(self.to_file_dict(), indent=2) + "\n")

    @classmethod
    def load_from_files(cls, config_path: Path) -> "GatewayConfig":
        """Load configuration from JSON file.

        Args:
            config_path: Path to the config JSON file.

        Returns:
            GatewayConfig instance with loaded configuration.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config file is invalid or missing required fields.
        """
        require_file_exists(config_path, file_type="configuration")
        return load_validated_json(
            config_path,
            cls,
            file_type="config",
            recovery_hint=f"Run '{APP_NAME} init' to reconfigure.",
            encoding="utf-8",
        )
