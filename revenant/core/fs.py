"""
Filesystem operations used by the reconciler and the cleaner.
"""

import logging
import shutil
from pathlib import Path
from typing import Protocol

from revenant.lib.errors import IoError

logger = logging.getLogger(__name__)


class Filesystem(Protocol):
    def exists(self, path: str) -> bool: ...

    def remove_recursive(self, path: str) -> None: ...


class LocalFilesystem:
    """Filesystem backed by the local disk."""

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def remove_recursive(self, path: str) -> None:
        """Delete a file or directory tree. Missing paths are not an error."""
        target = Path(path)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
        except OSError as e:
            raise IoError(f"Failed to remove {path}: {e}", path=path) from e
        logger.debug(f"Removed {path}")
