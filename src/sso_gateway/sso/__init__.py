"""SSO (CAS 2.0) ticket exchange.

- protocol: SSOClient interface the adapter depends on
- cas_client: CAS 2.0 client over httpx
- responses: CAS XML response parsing
- pgt_storage: Proxy-granting ticket storage for the PGT callback
- adapter: Per-request adapter converting SSO errors into result values
"""

from sso_gateway.sso.adapter import (
    Authenticated,
    AuthOutcome,
    NotAuthenticated,
    ProxyTicketResult,
    RedirectRequired,
    SSOClientAdapter,
)
from sso_gateway.sso.cas_client import CASClient
from sso_gateway.sso.pgt_storage import (
    EncryptedFilePGTStorage,
    MemoryPGTStorage,
    PGTStorage,
    create_pgt_storage,
)
from sso_gateway.sso.protocol import SSOClient
from sso_gateway.sso.responses import ServiceValidation

__all__ = [
    "AuthOutcome",
    "Authenticated",
    "CASClient",
    "EncryptedFilePGTStorage",
    "MemoryPGTStorage",
    "NotAuthenticated",
    "PGTStorage",
    "ProxyTicketResult",
    "RedirectRequired",
    "SSOClient",
    "SSOClientAdapter",
    "ServiceValidation",
    "create_pgt_storage",
]
