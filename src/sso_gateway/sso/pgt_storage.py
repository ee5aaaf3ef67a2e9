"""Storage for proxy-granting tickets delivered to the PGT callback.

The SSO server delivers pgtIou -> pgtId on a separate request (the
callback) before it answers the proxyValidate call that returns the
pgtIou. The two requests may be served by different workers, so the
production backend is file-based.

Provides two storage backends:
1. MemoryPGTStorage: single-process deployments and tests
2. EncryptedFilePGTStorage: Fernet-encrypted file per pgtIou
   - Key derived from machine-specific identifiers

Entries are single-use (removed when claimed) and expire after
PGT_IOU_TTL_SECONDS. Expired entries nobody claimed are swept by later
save() calls. PGTs are never stored in plaintext on disk.
"""

from __future__ import annotations

__all__ = [
    "EncryptedFilePGTStorage",
    "MemoryPGTStorage",
    "PGTStorage",
    "StoredPGT",
    "create_pgt_storage",
]

import base64
import hashlib
import socket
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from sso_gateway.constants import (
    APP_NAME,
    PGT_FILE_SUFFIX,
    PGT_IOU_TTL_SECONDS,
    PGT_PURGE_INTERVAL_SECONDS,
)
from sso_gateway.exceptions import PGTStorageError
from sso_gateway.telemetry.system.system_logger import get_system_logger
from sso_gateway.utils.file_helpers import get_app_dir, write_private_file

if TYPE_CHECKING:
    from cryptography.fernet import Fernet

    from sso_gateway.config import GatewayConfig


class StoredPGT(BaseModel):
    """A proxy-granting ticket waiting to be claimed.

    Attributes:
        pgt_id: The proxy-granting ticket.
        stored_at: UTC timestamp of the callback.
    """

    pgt_id: str
    stored_at: datetime

    def age_seconds(self) -> float:
        """Seconds since the callback delivered this ticket."""
        return (datetime.now(timezone.utc) - self.stored_at).total_seconds()


class PGTStorage(ABC):
    """Abstract base class for PGT storage backends.

    Every save() first sweeps expired entries, at most once per
    purge_interval_seconds, so unclaimed callbacks do not accumulate.
    """

    def __init__(
        self,
        ttl_seconds: int = PGT_IOU_TTL_SECONDS,
        purge_interval_seconds: float = PGT_PURGE_INTERVAL_SECONDS,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._purge_interval_seconds = purge_interval_seconds
        self._next_purge_at = 0.0

    def _is_expired(self, entry: StoredPGT) -> bool:
        return entry.age_seconds() >= self._ttl_seconds

    def _purge_if_due(self) -> None:
        now = time.monotonic()
        if now < self._next_purge_at:
            return
        self._next_purge_at = now + self._purge_interval_seconds

        try:
            removed = self.purge_expired()
        except OSError as e:
            get_system_logger().warning({"event": "pgt_purge_failed", "error": str(e)})
            return
        if removed:
            get_system_logger().info({"event": "pgt_entries_purged", "removed": removed})

    @abstractmethod
    def save(self, pgt_iou: str, pgt_id: str) -> None:
        """Store a PGT under its IOU.

        Raises:
            PGTStorageError: If save fails.
        """

    @abstractmethod
    def pop(self, pgt_iou: str) -> str | None:
        """Claim the PGT for an IOU, removing it from storage.

        Returns:
            The PGT, or None if unknown or expired.

        Raises:
            PGTStorageError: If the entry exists but cannot be read.
        """

    @abstractmethod
    def purge_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed.
        """


class MemoryPGTStorage(PGTStorage):
    """In-process PGT storage. Only valid when callback and validation share a process."""

    def __init__(
        self,
        ttl_seconds: int = PGT_IOU_TTL_SECONDS,
        purge_interval_seconds: float = PGT_PURGE_INTERVAL_SECONDS,
    ) -> None:
        super().__init__(ttl_seconds, purge_interval_seconds)
        self._entries: dict[str, StoredPGT] = {}
        self._lock = threading.Lock()

    def save(self, pgt_iou: str, pgt_id: str) -> None:
        self._purge_if_due()
        with self._lock:
            self._entries[pgt_iou] = StoredPGT(pgt_id=pgt_id, stored_at=datetime.now(timezone.utc))

    def pop(self, pgt_iou: str) -> str | None:
        with self._lock:
            entry = self._entries.pop(pgt_iou, None)
        if entry is None or self._is_expired(entry):
            return None
        return entry.pgt_id

    def purge_expired(self) -> int:
        with self._lock:
            expired = [iou for iou, entry in self._entries.items() if self._is_expired(entry)]
            for iou in expired:
                del self._entries[iou]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class EncryptedFilePGTStorage(PGTStorage):
    """PGT storage using one Fernet-encrypted file per pgtIou.

    File names are the SHA-256 of the IOU, so callback input never
    becomes a path component.

    Key derivation uses:
    - Machine ID (platform-specific)
    - Hostname
    - Static salt for this application
    """

    def __init__(
        self,
        directory: Path,
        ttl_seconds: int = PGT_IOU_TTL_SECONDS,
        purge_interval_seconds: float = PGT_PURGE_INTERVAL_SECONDS,
    ) -> None:
        """Initialize encrypted file storage.

        Args:
            directory: Directory holding the encrypted PGT files.
            ttl_seconds: Lifetime of an unclaimed entry.
            purge_interval_seconds: Minimum spacing of sweeps run from save().
        """
        super().__init__(ttl_seconds, purge_interval_seconds)
        self._directory = directory
        self._key: bytes | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, pgt_iou: str) -> Path:
        digest = hashlib.sha256(pgt_iou.encode()).hexdigest()
        return self._directory / f"{digest}{PGT_FILE_SUFFIX}"

    @staticmethod
    def _get_machine_id() -> str:
        """Get a stable machine identifier (systemd/dbus machine-id, else hostname)."""
        for path in ("/etc/machine-id", "/var/lib/dbus/machine-id"):
            try:
                with open(path) as f:
                    machine_id = f.read().strip()
            except OSError:
                continue
            if machine_id:
                return machine_id
        return socket.gethostname()

    def _derive_key(self) -> bytes:
        """Derive the Fernet key with PBKDF2 from machine identifiers."""
        if self._key is not None:
            return self._key

        combined = f"{self._get_machine_id()}:{socket.gethostname()}:{APP_NAME}-pgt-storage"
        # Static salt keeps the key stable across workers on the same machine
        salt = f"{APP_NAME}-pgt-v1".encode()
        key = hashlib.pbkdf2_hmac("sha256", combined.encode(), salt, iterations=100_000, dklen=32)

        self._key = base64.urlsafe_b64encode(key)
        return self._key

    def _get_fernet(self) -> "Fernet":
        from cryptography.fernet import Fernet

        return Fernet(self._derive_key())

    def save(self, pgt_iou: str, pgt_id: str) -> None:
        self._purge_if_due()
        entry = StoredPGT(pgt_id=pgt_id, stored_at=datetime.now(timezone.utc))
        path = self._path_for(pgt_iou)
        try:
            encrypted = self._get_fernet().encrypt(entry.model_dump_json().encode())
            write_private_file(path, encrypted)
        except OSError as e:
            raise PGTStorageError(f"Failed to store PGT: {e}") from e

    def pop(self, pgt_iou: str) -> str | None:
        from cryptography.fernet import InvalidToken

        path = self._path_for(pgt_iou)
        try:
            encrypted = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PGTStorageError(f"Failed to read PGT file: {e}") from e

        # Single use: gone before it is interpreted
        path.unlink(missing_ok=True)

        try:
            decrypted = self._get_fernet().decrypt(encrypted)
            entry = StoredPGT.model_validate_json(decrypted)
        except (InvalidToken, ValidationError) as e:
            raise PGTStorageError(
                f"Failed to decrypt PGT file (may be corrupted or key changed): {e}"
            ) from e

        if self._is_expired(entry):
            return None
        return entry.pgt_id

    def purge_expired(self) -> int:
        """Remove files older than the TTL.

        Age comes from the file's modification time (written by save()), so
        young entries are never decrypted here. Unreadable or corrupt files
        go once they are old.
        """
        if not self._directory.exists():
            return 0

        now = time.time()
        removed = 0
        for path in self._directory.glob(f"*{PGT_FILE_SUFFIX}"):
            try:
                if now - path.stat().st_mtime < self._ttl_seconds:
                    continue
                path.unlink(missing_ok=True)
            except OSError:
                continue
            removed += 1
        return removed


def create_pgt_storage(config: "GatewayConfig") -> PGTStorage:
    """Create the PGT storage for a proxy mode deployment.

    Uses proxy.pgt_dir when configured, else <app_dir>/pgt.

    Args:
        config: Gateway configuration.

    Returns:
        EncryptedFilePGTStorage for the configured directory.
    """
    pgt_dir = config.proxy.pgt_dir if config.proxy is not None else None
    directory = Path(pgt_dir).expanduser() if pgt_dir else get_app_dir() / "pgt"

    get_system_logger().debug(
        {
            "event": "pgt_storage_selected",
            "backend": "encrypted_file",
            "directory": str(directory),
        }
    )
    return EncryptedFilePGTStorage(directory)
