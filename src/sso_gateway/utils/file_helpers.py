"""Filesystem helpers shared by config, PGT storage and logging.

Everything the gateway writes (config with an inline credential, encrypted
PGT files, audit logs) lives in owner-only locations, so directory creation
and file writes go through ensure_private_dir and write_private_file.
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import TypeVar

import click
from pydantic import BaseModel, ValidationError

from sso_gateway.constants import APP_NAME

T = TypeVar("T", bound=BaseModel)

__all__ = [
    "ensure_private_dir",
    "get_app_dir",
    "load_validated_json",
    "require_file_exists",
    "set_secure_permissions",
    "write_private_file",
]


def get_app_dir() -> Path:
    """Per-user application directory (click.get_app_dir, e.g. ~/.config/sso-gateway)."""
    return Path(click.get_app_dir(APP_NAME))


def set_secure_permissions(path: Path, *, is_directory: bool = False) -> None:
    """Restrict path to its owner (0o700 for directories, 0o600 for files).

    No-op on Windows. Filesystems that refuse chmod are tolerated.
    """
    if sys.platform == "win32":
        return
    try:
        path.chmod(0o700 if is_directory else 0o600)
    except OSError:
        pass


def ensure_private_dir(directory: Path) -> Path:
    """Create directory and its parents, then restrict it to the owner.

    Raises:
        OSError: If the directory cannot be created.
    """
    directory.mkdir(parents=True, exist_ok=True)
    set_secure_permissions(directory, is_directory=True)
    return directory


def write_private_file(path: Path, data: bytes | str) -> None:
    """Atomically replace path with data, readable by the owner only.

    Data goes to a temp file in the same directory (created 0o600 by
    mkstemp) which is then renamed over the target. Readers see either
    the old content or the new one.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    ensure_private_dir(path.parent)
    payload = data.encode("utf-8") if isinstance(data, str) else data

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise

    set_secure_permissions(path)


def require_file_exists(file_path: Path, file_type: str = "file", init_hint: bool = True) -> None:
    """Raise FileNotFoundError pointing at 'sso-gateway init' when file_path is missing."""
    if file_path.exists():
        return

    hint = f"\nRun '{APP_NAME} init' to create a {file_type} file." if init_hint else ""
    raise FileNotFoundError(f"{file_type.capitalize()} file not found at {file_path}.{hint}")


def load_validated_json(
    file_path: Path,
    model_class: type[T],
    file_type: str = "file",
    recovery_hint: str | None = None,
    encoding: str | None = None,
) -> T:
    """Load a JSON file and validate it against a Pydantic model.

    Validation errors are flattened to one "  - field.path: message" line
    per problem so the CLI can print them as-is.

    Raises:
        ValueError: If the file is unreadable, not JSON, or fails validation.
    """
    try:
        with open(file_path, "r", encoding=encoding) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_type} file {file_path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Could not read {file_type} file {file_path}: {e}") from e

    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        lines = []
        for error in e.errors():
            loc = ".".join(str(part) for part in error["loc"])
            # Model-level validators report an empty location
            lines.append(f"  - {loc or '(root)'}: {error['msg']}")

        hint = f"\n\n{recovery_hint}" if recovery_hint else ""
        raise ValueError(
            f"Invalid {file_type} configuration in {file_path}:\n" + "\n".join(lines) + hint
        ) from e
