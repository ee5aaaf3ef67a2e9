"""Secure storage for the direct-mode static backend credential.

Stores the static mail-store password in the OS keychain so the config
file holds only a reference key (credential_key).

Key format: backend:{name}
"""

from __future__ import annotations

__all__ = [
    "BackendCredentialStorage",
    "is_keyring_available",
    "resolve_static_credential",
]

from typing import TYPE_CHECKING

from sso_gateway.constants import APP_NAME
from sso_gateway.exceptions import ConfigurationError, CredentialStorageError
from sso_gateway.telemetry.system.system_logger import get_system_logger

if TYPE_CHECKING:
    from sso_gateway.config import DirectModeConfig

# Service name for keyring storage
KEYRING_SERVICE = APP_NAME


class BackendCredentialStorage:
    """Secure storage for the static backend credential using OS keychain.

    Usage:
        storage = BackendCredentialStorage("imap")
        storage.save("master-secret")
        credential = storage.load()
    """

    def __init__(self, name: str) -> None:
        """Initialize credential storage.

        Args:
            name: Credential name (used in keychain key).
        """
        self._service = KEYRING_SERVICE
        self._username = name if name.startswith("backend:") else f"backend:{name}"

    @property
    def credential_key(self) -> str:
        """Key stored in config.json instead of the actual credential."""
        return self._username

    def save(self, credential: str) -> None:
        """Save credential to keychain.

        Raises:
            CredentialStorageError: If keychain access fails.
        """
        import keyring
        from keyring.errors import KeyringError

        try:
            keyring.set_password(self._service, self._username, credential)
        except KeyringError as e:
            raise CredentialStorageError(f"Failed to save credential to keychain: {e}") from e

    def load(self) -> str | None:
        """Load credential from keychain.

        Returns:
            The stored credential, or None if not found.

        Raises:
            CredentialStorageError: If keychain access fails.
        """
        import keyring
        from keyring.errors import KeyringError

        try:
            return keyring.get_password(self._service, self._username)
        except KeyringError as e:
            raise CredentialStorageError(f"Failed to access keychain: {e}") from e

    def delete(self) -> None:
        """Delete credential from keychain.

        Raises:
            CredentialStorageError: If keychain access fails.
        """
        import keyring
        from keyring.errors import KeyringError, PasswordDeleteError

        try:
            keyring.delete_password(self._service, self._username)
        except PasswordDeleteError:
            pass  # Already gone
        except KeyringError as e:
            raise CredentialStorageError(f"Failed to delete credential from keychain: {e}") from e

    def exists(self) -> bool:
        """Check if credential exists in keychain."""
        import keyring
        from keyring.errors import KeyringError

        try:
            return keyring.get_password(self._service, self._username) is not None
        except KeyringError:
            return False


def resolve_static_credential(direct: "DirectModeConfig") -> str:
    """Resolve the static backend credential for direct mode.

    Args:
        direct: Direct mode configuration.

    Returns:
        The credential. Empty string when none is configured.

    Raises:
        ConfigurationError: If credential_key points to a missing keychain
            entry or the keychain cannot be read.
    """
    if direct.password is not None:
        return direct.password.get_secret_value()

    if direct.credential_key is None:
        return ""

    storage = BackendCredentialStorage(direct.credential_key)
    try:
        credential = storage.load()
    except CredentialStorageError as e:
        raise ConfigurationError(str(e)) from e

    if credential is None:
        raise ConfigurationError(
            f"No credential stored under '{storage.credential_key}'. "
            f"Run '{APP_NAME} credential set' to store it."
        )
    return credential


def is_keyring_available() -> bool:
    """Check if keyring backend is available and functional.

    Returns:
        True if keyring can store/retrieve secrets.
    """
    logger = get_system_logger()

    try:
        import keyring
        from keyring.backends.fail import Keyring as FailKeyring
        from keyring.errors import KeyringError

        backend = keyring.get_keyring()
        if isinstance(backend, FailKeyring):
            logger.debug(
                {
                    "event": "keyring_unavailable",
                    "reason": "fail_backend",
                    "message": "Keyring using FailKeyring backend (no usable backend found)",
                }
            )
            return False

        test_service = f"{APP_NAME}-cred-test"
        test_user = "availability-check"
        test_value = "test"

        keyring.set_password(test_service, test_user, test_value)
        result = keyring.get_password(test_service, test_user)
        keyring.delete_password(test_service, test_user)

        return result == test_value

    except (KeyringError, ImportError) as e:
        logger.debug(
            {
                "event": "keyring_unavailable",
                "reason": "exception",
                "error": str(e),
                "error_type": type(e).__name__,
            }
        )
        return False
