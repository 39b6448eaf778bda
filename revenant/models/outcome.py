"""
Per-plugin reconciliation results and run-level status.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from revenant.lib.errors import RevenantError
from revenant.models.plugin import PluginSpec

# Reserved for Ctrl-C; never produced by a reconciliation run
INTERRUPTED_EXIT_CODE = 130


class Verdict(str, Enum):
    """What reconciliation did to one plugin."""

    INSTALLED = "installed"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class PluginState(str, Enum):
    """Observed on-disk state of a plugin before acting on it."""

    ABSENT = "absent"
    PRESENT_CORRUPT = "present_corrupt"
    PRESENT_WRONG_REVISION = "present_wrong_revision"
    PRESENT_CORRECT = "present_correct"


class RunStatus(str, Enum):
    """Aggregate status of a run."""

    SUCCESS = "success"
    CONFIG_ERROR = "config_error"
    PARTIAL_FAILURE = "partial_failure"
    FATAL = "fatal"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES = {
    RunStatus.SUCCESS: 0,
    RunStatus.CONFIG_ERROR: 1,
    RunStatus.PARTIAL_FAILURE: 2,
    RunStatus.FATAL: 3,
}


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Result of reconciling one plugin in one run.

    Attributes:
        spec: The declared plugin.
        verdict: installed, updated, skipped or failed.
        detail: One human-readable line describing what happened.
        state: The state detected before acting.
        cause: The VcsError/IoError behind a failed verdict, else None.
        previous_commit: Commit found on disk before acting, if any.
        path: The plugin's install directory.
    """

    spec: PluginSpec
    verdict: Verdict
    detail: str
    state: PluginState
    path: str
    cause: Optional[RevenantError] = None
    previous_commit: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.verdict is Verdict.FAILED

    @property
    def repaired(self) -> bool:
        return self.state is PluginState.PRESENT_CORRUPT and not self.failed
