"""
Validators for declared plugin fields.

Everything here is a pure check over strings. It runs before any git or
filesystem work so a bad config is reported with no side effects.
"""

import re
from typing import Iterable

from revenant.lib.errors import ValidationError
from revenant.models.plugin import PluginSpec

# https://github.com/owner/repo or https://github.com/owner/repo.git
_GITHUB_URL_PATTERN = re.compile(r"^https://github\.com/[\w-]+/[\w.-]+(?:\.git)?$", re.ASCII)

# 40-char SHA-1, any case
_COMMIT_PATTERN = re.compile(r"^[0-9a-fA-F]{40}$")

# 1-100 chars of letters, digits, _ . -; must not start with - or .
_NAME_PATTERN = re.compile(r"^\w[\w.-]{0,99}$", re.ASCII)

_SHELL_METACHARS = re.compile(r"[;&|`$()<>\n]")


def is_valid_name(name: str) -> bool:
    """Validate a plugin name."""
    return isinstance(name, str) and _NAME_PATTERN.fullmatch(name) is not None


def is_valid_source_location(url: str) -> bool:
    """Validate a repository URL. Only HTTPS GitHub URLs are accepted."""
    return isinstance(url, str) and _GITHUB_URL_PATTERN.fullmatch(url) is not None


def is_valid_revision(rev: str) -> bool:
    """Validate a full 40-character commit hash."""
    return isinstance(rev, str) and _COMMIT_PATTERN.fullmatch(rev) is not None


def reject_shell_metacharacters(value: str) -> None:
    """Raise ValidationError if ``value`` contains shell metacharacters."""
    if _SHELL_METACHARS.search(value):
        raise ValidationError(
            "Invalid characters in input: shell metacharacters are not allowed"
        )


def validate_spec(spec: PluginSpec, index: int = 0) -> None:
    """Validate the fields of a single declared plugin."""
    if not spec.name:
        raise ValidationError(f"Plugin at index {index} is missing required field: name")
    if not spec.repo:
        raise ValidationError(f"Plugin at index {index} is missing required field: repo")
    if not spec.commit:
        raise ValidationError(f"Plugin at index {index} is missing required field: commit")

    if not is_valid_name(spec.name):
        raise ValidationError(f'Invalid plugin name: "{spec.name}"')
    if not is_valid_source_location(spec.repo):
        raise ValidationError(f'Invalid GitHub URL for plugin "{spec.name}": {spec.repo}')
    if not is_valid_revision(spec.commit):
        raise ValidationError(f'Invalid commit hash for plugin "{spec.name}": {spec.commit}')

    for dep in spec.dependencies:
        if not is_valid_name(dep):
            raise ValidationError(f'Invalid dependency name for plugin "{spec.name}": "{dep}"')


def validate_specs(specs: Iterable[PluginSpec]) -> list[PluginSpec]:
    """Validate a declared plugin set. Returns it as a list.

    Raises:
        ValidationError: on an empty set, a malformed field or a duplicate name.
    """
    specs = list(specs)
    if not specs:
        raise ValidationError("Plugins array must not be empty")

    seen: set[str] = set()
    for index, spec in enumerate(specs):
        validate_spec(spec, index)
        if spec.name in seen:
            raise ValidationError(f'Duplicate plugin name: "{spec.name}"')
        seen.add(spec.name)

    return specs
