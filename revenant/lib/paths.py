"""
Cross-platform install path resolution.

POSIX:   ~/.local/share/nvim/revenant/plugins/<name>
Windows: %LOCALAPPDATA%\\nvim\\revenant\\plugins\\<name>
"""

import ntpath
import os
import posixpath
import sys
from pathlib import Path
from typing import Optional

from revenant.lib.errors import ConfigError


def _path_module():
    """Platform-specific path module (ntpath on Windows)."""
    return ntpath if sys.platform == "win32" else posixpath


def expand_tilde(path: str) -> str:
    """Expand a leading ``~/`` to the user's home directory."""
    if path == "~":
        return str(Path.home())
    if path.startswith("~/") or path.startswith("~\\"):
        return _path_module().join(str(Path.home()), path[2:])
    return path


def compress_tilde(path: str) -> str:
    """Replace the user's home directory prefix with ``~`` for display."""
    home = str(Path.home())
    if path == home:
        return "~"
    for sep in ("/", "\\"):
        if path.startswith(home + sep):
            return "~" + sep + path[len(home) + 1:]
    return path


def default_install_dir() -> str:
    """Default plugin install directory for this platform."""
    pathmod = _path_module()

    if sys.platform == "win32":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if not local_app_data:
            raise ConfigError("LOCALAPPDATA environment variable not set")
        return pathmod.join(local_app_data, "nvim", "revenant", "plugins")

    return pathmod.join(str(Path.home()), ".local", "share", "nvim", "revenant", "plugins")


def resolve_install_dir(*candidates: Optional[str], base: Optional[str] = None) -> str:
    """Return the first configured install dir, else the default.

    The result is always absolute: a relative candidate is taken relative to
    ``base`` (the current directory when not given).
    """
    pathmod = _path_module()
    for candidate in candidates:
        if candidate:
            path = expand_tilde(candidate)
            if not pathmod.isabs(path):
                path = pathmod.normpath(pathmod.join(base or os.getcwd(), path))
            return path
    return default_install_dir()


def resolve_plugin_path(name: str, install_dir: Optional[str] = None) -> str:
    """Full path of a plugin's directory."""
    return _path_module().join(resolve_install_dir(install_dir), name)
