"""Application-wide constants for sso-gateway.

Constants that define gateway behavior.
For user-configurable settings per deployment, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    "CONFIG_FILENAME",
    # Host integration
    "ACTION_PGT_CALLBACK",
    "ACTION_SSO_LOGOUT",
    "ACTION_LOGIN",
    "TASK_MAIL",
    "TASK_LOGOUT_MARKER",
    "LOGIN_TEMPLATE",
    "PARAM_PREFIX",
    "RETURN_URL_FIELD",
    "FORWARDED_PROTO_HEADER",
    # Return URL cookie
    "DEFAULT_RETURN_URL_COOKIE",
    "DEFAULT_RETURN_URL_MAX_AGE_SECONDS",
    "MIN_RETURN_URL_MAX_AGE_SECONDS",
    "MAX_RETURN_URL_MAX_AGE_SECONDS",
    # Session keys
    "SESSION_PRINCIPAL_KEY",
    "SESSION_PGT_KEY",
    "SESSION_TICKETS_KEY",
    "SESSION_DESTROYED_KEY",
    # SSO server
    "DEFAULT_SSO_PORT",
    "DEFAULT_SSO_BASE_PATH",
    "DEFAULT_HTTP_TIMEOUT_SECONDS",
    "MIN_HTTP_TIMEOUT_SECONDS",
    "MAX_HTTP_TIMEOUT_SECONDS",
    "CAS_NAMESPACE",
    # PGT storage
    "PGT_IOU_TTL_SECONDS",
    "PGT_FILE_SUFFIX",
    "PGT_PURGE_INTERVAL_SECONDS",
    # Certificate monitoring
    "CERT_EXPIRY_WARNING_DAYS",
    "CERT_EXPIRY_CRITICAL_DAYS",
    # Backend connect
    "FIRST_CONNECT_ATTEMPT",
]

# =============================================================================
# Application identity
# =============================================================================

APP_NAME = "sso-gateway"
CONFIG_FILENAME = "config.json"

# =============================================================================
# Host integration
# =============================================================================

# Gateway-internal actions, both handled before any session exists
ACTION_PGT_CALLBACK = "pgt-callback"
ACTION_SSO_LOGOUT = "sso-logout"

# Host action/task the SSO server returns the browser to
ACTION_LOGIN = "login"
TASK_MAIL = "mail"

# A query string containing this marker is an explicit logout, never a return target
TASK_LOGOUT_MARKER = "_task=logout"

# Template name the host renders for its native login form
LOGIN_TEMPLATE = "login"

# Host parameter namespace marker (e.g. "_task", "_action")
PARAM_PREFIX = "_"

# Posted form field carrying the originally requested URL
RETURN_URL_FIELD = "_url"

# Set by TLS-terminating reverse proxies
FORWARDED_PROTO_HEADER = "x-forwarded-proto"

# =============================================================================
# Return URL cookie
# =============================================================================

DEFAULT_RETURN_URL_COOKIE = "sso_return_url"
DEFAULT_RETURN_URL_MAX_AGE_SECONDS = 600
MIN_RETURN_URL_MAX_AGE_SECONDS = 30
MAX_RETURN_URL_MAX_AGE_SECONDS = 3600

# =============================================================================
# Session keys (namespaced inside the host session mapping)
# =============================================================================

SESSION_PRINCIPAL_KEY = "sso_gateway.principal"
SESSION_PGT_KEY = "sso_gateway.pgt"
SESSION_TICKETS_KEY = "sso_gateway.proxy_tickets"
# Left behind by destroy(); the host drops the mapping after destroy_session
SESSION_DESTROYED_KEY = "sso_gateway.destroyed"

# =============================================================================
# SSO server
# =============================================================================

DEFAULT_SSO_PORT = 443
DEFAULT_SSO_BASE_PATH = "/cas"

# Ticket validation and proxy ticket requests block the request thread
DEFAULT_HTTP_TIMEOUT_SECONDS = 10
MIN_HTTP_TIMEOUT_SECONDS = 1
MAX_HTTP_TIMEOUT_SECONDS = 120

# XML namespace of CAS 2.0 protocol responses
CAS_NAMESPACE = "http://www.yale.edu/tp/cas"

# =============================================================================
# PGT storage
# =============================================================================

# A pgtIou not claimed within this window is discarded
PGT_IOU_TTL_SECONDS = 300
PGT_FILE_SUFFIX = ".pgt"
# Minimum spacing between expired-entry sweeps triggered by new callbacks
PGT_PURGE_INTERVAL_SECONDS = 60

# =============================================================================
# Certificate monitoring
# =============================================================================

CERT_EXPIRY_WARNING_DAYS = 30
CERT_EXPIRY_CRITICAL_DAYS = 7

# =============================================================================
# Backend connect
# =============================================================================

# Only the first attempt may reuse a cached ticket or request a retry
FIRST_CONNECT_ATTEMPT = 1
