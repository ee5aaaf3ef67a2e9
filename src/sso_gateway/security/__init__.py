"""Security primitives for sso-gateway.

- credential_storage: OS keychain storage for the direct-mode static credential
- tls: TLS validation policy for the SSO server connection
"""

from sso_gateway.security.credential_storage import (
    BackendCredentialStorage,
    is_keyring_available,
    resolve_static_credential,
)
from sso_gateway.security.tls import (
    build_verify,
    get_certificate_expiry_info,
    validate_tls_config,
)

__all__ = [
    "BackendCredentialStorage",
    "build_verify",
    "get_certificate_expiry_info",
    "is_keyring_available",
    "resolve_static_credential",
    "validate_tls_config",
]
