"""
Typed errors for plugin reconciliation.

Every failure the tool reports falls into one of a few kinds. Callers tell
them apart by type (or by ``code``), never by matching message text:

- ValidationError: the declared plugin set is malformed. Raised before any
  plugin is touched and aborts the whole run.
- VcsError: a git operation failed for one plugin.
- IoError: a filesystem operation failed for one plugin.
- ConfigError: a config or lock file could not be read, parsed or written.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Error codes for programmatic handling."""

    VALIDATION_ERROR = "validation_error"
    MISSING_DEPENDENCY = "missing_dependency"
    DEPENDENCY_CYCLE = "dependency_cycle"
    VCS_ERROR = "vcs_error"
    IO_ERROR = "io_error"
    CONFIG_ERROR = "config_error"
    UNKNOWN_ERROR = "unknown_error"


# Exit code and short title for each error code
ERROR_DEFINITIONS: dict[ErrorCode, dict[str, Any]] = {
    ErrorCode.VALIDATION_ERROR: {"title": "Invalid configuration", "exit_code": 1},
    ErrorCode.MISSING_DEPENDENCY: {"title": "Missing dependency", "exit_code": 1},
    ErrorCode.DEPENDENCY_CYCLE: {"title": "Circular dependency", "exit_code": 1},
    ErrorCode.CONFIG_ERROR: {"title": "Configuration file error", "exit_code": 1},
    ErrorCode.VCS_ERROR: {"title": "Git operation failed", "exit_code": 2},
    ErrorCode.IO_ERROR: {"title": "Filesystem operation failed", "exit_code": 2},
    ErrorCode.UNKNOWN_ERROR: {"title": "Unexpected error", "exit_code": 3},
}


class RevenantError(Exception):
    """Base class for all errors raised by revenant."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RevenantError):
    """Declared plugin input is malformed or semantically invalid."""

    code = ErrorCode.VALIDATION_ERROR


class MissingDependencyError(ValidationError):
    """A plugin depends on a name that is not in the declared set."""

    code = ErrorCode.MISSING_DEPENDENCY

    def __init__(self, dependent: str, missing: str):
        super().__init__(
            f'Plugin "{dependent}" depends on "{missing}", '
            f'but "{missing}" is not defined in the configuration'
        )
        self.dependent = dependent
        self.missing = missing


class DependencyCycleError(ValidationError):
    """The dependency graph has a cycle (self-dependencies included)."""

    code = ErrorCode.DEPENDENCY_CYCLE

    def __init__(self, unresolved: list[str]):
        super().__init__(
            f"Circular dependency detected involving plugins: {', '.join(unresolved)}"
        )
        self.unresolved = list(unresolved)


class VcsError(RevenantError):
    """A git operation failed or timed out."""

    code = ErrorCode.VCS_ERROR

    def __init__(self, message: str, operation: str = "", stderr: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.stderr = stderr


class IoError(RevenantError):
    """A filesystem operation failed."""

    code = ErrorCode.IO_ERROR

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ConfigError(RevenantError):
    """A config or lock file could not be read, parsed or written."""

    code = ErrorCode.CONFIG_ERROR


def error_code_for(error: BaseException) -> ErrorCode:
    """Return the ErrorCode for any exception."""
    if isinstance(error, RevenantError):
        return error.code
    return ErrorCode.UNKNOWN_ERROR


def exit_code_for(error: BaseException) -> int:
    """Map an exception to the process exit code the CLI should return."""
    return ERROR_DEFINITIONS[error_code_for(error)]["exit_code"]


def describe(error: BaseException) -> str:
    """One-line, user-facing description of an error (no traceback)."""
    if isinstance(error, RevenantError):
        text = error.message
    else:
        text = f"{type(error).__name__}: {error}"
    # Git stderr can span several lines; keep the first meaningful one
    lines = [line.strip() for line in str(text).splitlines() if line.strip()]
    return lines[0] if lines else ERROR_DEFINITIONS[error_code_for(error)]["title"]
