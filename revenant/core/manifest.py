"""
The declared plugin set: reading, validating and creating the JSON config.

Config file shape:
    {
      "installDir": "~/.local/share/nvim/site/pack/revenant/start",   (optional)
      "plugins": [
        {"name": "plenary.nvim",
         "repo": "https://github.com/nvim-lua/plenary.nvim",
         "commit": "<40-char sha>"},
        {"name": "telescope.nvim",
         "repo": "https://github.com/nvim-telescope/telescope.nvim",
         "commit": "<40-char sha>",
         "dependencies": ["plenary.nvim"]}
      ]
    }

Lookup order when no path is given: ./.revenant.json, then
~/.config/revenant/plugins.json. The lock file sits next to the config.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from revenant.config import get_config_dir
from revenant.core.validator import validate_specs
from revenant.lib.errors import ConfigError, ValidationError
from revenant.models.plugin import PluginSpec

logger = logging.getLogger(__name__)

LOCAL_CONFIG_NAME = ".revenant.json"
LOCAL_LOCK_NAME = ".revenant.lock"
GLOBAL_CONFIG_NAME = "plugins.json"
GLOBAL_LOCK_NAME = "plugins.lock"

EXAMPLE_COMMIT = "0" * 40

_REQUIRED_FIELDS = ("name", "repo", "commit")


class DeclaredConfig(BaseModel):
    """A parsed and validated config file."""

    plugins: list[PluginSpec]
    install_dir: Optional[str] = Field(default=None, alias="installDir")

    model_config = {"populate_by_name": True}

    def names(self) -> list[str]:
        return [spec.name for spec in self.plugins]


def resolve_config_path(explicit: Optional[Union[str, Path]] = None) -> Path:
    """Find the config file to use.

    Raises:
        ConfigError: if no config file can be found.
    """
    if explicit:
        path = Path(explicit).expanduser()
        if not path.exists():
            raise ConfigError(f"Configuration file not found at {path}")
        return path

    local = Path.cwd() / LOCAL_CONFIG_NAME
    if local.exists():
        return local

    global_config = get_config_dir() / GLOBAL_CONFIG_NAME
    if global_config.exists():
        return global_config

    raise ConfigError('Configuration file not found. Run "revenant init" to create one.')


def lock_path_for(config_path: Union[str, Path]) -> Path:
    """Lock file path that belongs to a config file."""
    path = Path(config_path)
    if path.name == LOCAL_CONFIG_NAME:
        return path.with_name(LOCAL_LOCK_NAME)
    if path.name == GLOBAL_CONFIG_NAME:
        return path.with_name(GLOBAL_LOCK_NAME)
    return path.with_name(path.name + ".lock")


def _spec_from_entry(entry: Any, index: int) -> PluginSpec:
    if not isinstance(entry, dict):
        raise ValidationError(f"Plugin at index {index} must be an object")
    for key in _REQUIRED_FIELDS:
        if not entry.get(key):
            raise ValidationError(f"Plugin at index {index} is missing required field: {key}")
    deps = entry.get("dependencies")
    if deps is not None and not isinstance(deps, list):
        raise ValidationError(f"Plugin at index {index}: dependencies must be an array")
    try:
        return PluginSpec.model_validate(entry)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            f"Plugin at index {index} has an invalid field {field}: {first.get('msg')}"
        ) from e


def parse_config_data(data: Any) -> DeclaredConfig:
    """Validate already-decoded JSON config data.

    Raises:
        ValidationError: if the structure or any plugin entry is invalid.
    """
    if not isinstance(data, dict) or "plugins" not in data:
        raise ValidationError('Configuration must contain a "plugins" array')

    entries = data["plugins"]
    if not isinstance(entries, list) or not entries:
        raise ValidationError("Plugins array must not be empty")

    install_dir = data.get("installDir")
    if install_dir is not None and not isinstance(install_dir, str):
        raise ValidationError('"installDir" must be a string')

    specs = [_spec_from_entry(entry, i) for i, entry in enumerate(entries)]
    validate_specs(specs)
    return DeclaredConfig(plugins=specs, install_dir=install_dir or None)


def parse_config_file(path: Union[str, Path]) -> DeclaredConfig:
    """Read and validate a config file.

    Raises:
        ConfigError: if the file cannot be read or is not valid JSON.
        ValidationError: if the content is not a valid plugin set.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file at {path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in configuration file: {e}") from e

    config = parse_config_data(data)
    logger.debug(f"Loaded {len(config.plugins)} plugin(s) from {path}")
    return config


def example_config() -> dict[str, Any]:
    return {
        "plugins": [
            {
                "name": "example-plugin",
                "repo": "https://github.com/owner/repository",
                "commit": EXAMPLE_COMMIT,
            }
        ]
    }


def write_example_config(path: Union[str, Path], force: bool = False) -> Path:
    """Create a starter config file.

    Raises:
        ConfigError: if the file exists and ``force`` is False, or on write failure.
    """
    path = Path(path)
    if path.exists() and not force:
        raise ConfigError(f"Configuration file already exists at {path}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(example_config(), indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to create configuration file: {e}") from e
    return path
