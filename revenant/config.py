"""
Configuration management for revenant.

Precedence: env vars (REVENANT_*) > config.yaml > defaults

Config file: ~/.config/revenant/config.yaml

These are tool settings (where plugins go, how long git may run, how loud
logging is). The declared plugin set lives in a separate JSON file, see
revenant.core.manifest.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "REVENANT_"

# Known config keys that can be set via `revenant config set`
CONFIG_KEYS = {"install_dir", "log_level", "git_timeout", "git_executable"}

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def get_config_dir() -> Path:
    """Get the revenant config directory (~/.config/revenant)."""
    raw = os.environ.get(f"{ENV_PREFIX}CONFIG_DIR", "")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".config" / "revenant"


def get_config_path(config_dir: Optional[Path] = None) -> Path:
    """Get the config.yaml path."""
    return (config_dir or get_config_dir()) / "config.yaml"


def load_yaml_config(config_dir: Optional[Path] = None) -> dict[str, Any]:
    """Load config.yaml. Returns {} when missing or unreadable."""
    config_file = get_config_path(config_dir)
    if not config_file.exists():
        return {}
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"config.yaml is not a dict, ignoring: {config_file}")
            return {}
        return data
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Error loading config.yaml: {e}")
        return {}


def save_yaml_config(data: dict[str, Any], config_dir: Optional[Path] = None) -> Path:
    """Write config values to config.yaml."""
    config_file = get_config_path(config_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    return config_file


class Settings(BaseSettings):
    """Tool settings. Precedence: env vars > config.yaml > defaults."""

    install_dir: Optional[str] = Field(
        default=None,
        description="Plugin install directory (overrides the platform default)",
    )
    log_level: str = Field(default="WARNING", description="Log level")
    log_format: str = Field(
        default="%(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )
    git_timeout: int = Field(
        default=120,
        description="Seconds before a single git command is abandoned",
    )
    git_executable: str = Field(default="git", description="git binary to invoke")

    model_config = {
        "env_prefix": ENV_PREFIX,
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(sorted(_LOG_LEVELS))}")
        return upper

    @field_validator("git_timeout")
    @classmethod
    def _check_git_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("git_timeout must be a positive number of seconds")
        return value

    @model_validator(mode="before")
    @classmethod
    def _inject_yaml_config(cls, data: Any) -> Any:
        """Inject config.yaml values as fallbacks below env vars."""
        if not isinstance(data, dict):
            data = {}

        for key, value in load_yaml_config().items():
            if key not in CONFIG_KEYS:
                continue
            if key in data and data[key] is not None:
                continue
            # Don't override if env var is set
            if os.environ.get(f"{ENV_PREFIX}{key.upper()}") is None:
                data[key] = value

        return data


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment and config.yaml."""
    global _settings
    _settings = Settings()
    return _settings
