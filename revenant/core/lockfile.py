"""
Lock file persistence.

The lock file records what revenant installed, one entry per plugin:
    {"version": "1", "generated": "<iso>",
     "plugins": [{"name", "repo", "commit", "installedAt", "path"}, ...]}

A missing lock file reads as an empty ledger. Writes are atomic so an
interrupted run never leaves a half-written file behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError as PydanticValidationError

from revenant.lib.errors import ConfigError
from revenant.models.ledger import LOCK_FILE_VERSION, Ledger

logger = logging.getLogger(__name__)


def read_lock_file(path: Union[str, Path]) -> Ledger:
    """Read a lock file, or return an empty ledger if it does not exist.

    Raises:
        ConfigError: if the file exists but is unreadable, not JSON, of an
            unsupported version, or structurally invalid.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Ledger.empty()
    except OSError as e:
        raise ConfigError(f"Failed to read lock file at {path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in lock file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid lock file at {path}: expected an object")

    version = data.get("version")
    if version != LOCK_FILE_VERSION:
        raise ConfigError(
            f"Unsupported lock file version: {version}. Expected: {LOCK_FILE_VERSION}"
        )

    try:
        return Ledger.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid lock file at {path}: {e.errors()[0].get('msg')}") from e


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    """Atomically write a JSON file."""
    content = json.dumps(data, indent=2) + "\n"
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix=f".{path.stem}-")
    closed = False
    try:
        os.write(fd, content.encode("utf-8"))
        os.fsync(fd)
        os.close(fd)
        closed = True
        os.replace(tmp_path, path)
    except Exception:
        if not closed:
            os.close(fd)
        if Path(tmp_path).exists():
            os.unlink(tmp_path)
        raise


def write_lock_file(path: Union[str, Path], ledger: Ledger) -> None:
    """Persist a ledger snapshot.

    Raises:
        ConfigError: if the file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write_json(path, ledger.model_dump(mode="json", by_alias=True))
    except OSError as e:
        raise ConfigError(f"Failed to write lock file at {path}: {e}") from e
    logger.debug(f"Wrote lock file {path} ({len(ledger.plugins)} plugin(s))")
