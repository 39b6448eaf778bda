"""
Per-plugin reconciliation.

For one declared plugin, detect what is on disk and take the smallest
action that converges it on the declared commit:

    absent                  -> clone, checkout          (installed)
    present, corrupt        -> delete, clone, checkout  (installed, repaired)
    present, wrong commit   -> checkout                 (updated)
    present, right commit   -> nothing                  (skipped)

Detection runs every time; a directory is corrupt when it is missing while
the lock file says it should be there, when git cannot report its HEAD, or
when HEAD is not a full commit hash. Git and filesystem failures become a
``failed`` outcome for that plugin and are never raised to the caller.
"""

import logging
from typing import Optional

from revenant.core.fs import Filesystem
from revenant.core.git import VcsClient
from revenant.core.validator import is_valid_revision
from revenant.lib.errors import IoError, RevenantError, VcsError, describe
from revenant.lib.paths import resolve_plugin_path
from revenant.models.outcome import PluginState, ReconciliationOutcome, Verdict
from revenant.models.plugin import InstalledRecord, PluginSpec

logger = logging.getLogger(__name__)


def inspect_state(
    spec: PluginSpec,
    path: str,
    vcs: VcsClient,
    fs: Filesystem,
    previous: Optional[InstalledRecord] = None,
) -> tuple[PluginState, Optional[str]]:
    """Classify the on-disk state of ``spec`` at ``path``.

    Returns the state and the commit currently checked out (None unless the
    repository is intact).
    """
    if not fs.exists(path):
        # Recorded as installed but the directory is gone
        if previous is not None:
            return PluginState.PRESENT_CORRUPT, None
        return PluginState.ABSENT, None

    try:
        current = vcs.current_revision(path)
    except VcsError as e:
        logger.debug(f"{spec.name}: cannot read HEAD at {path}: {e}")
        return PluginState.PRESENT_CORRUPT, None

    if not is_valid_revision(current):
        logger.debug(f"{spec.name}: HEAD at {path} is not a full commit hash: {current!r}")
        return PluginState.PRESENT_CORRUPT, None

    if current.lower() == spec.commit.lower():
        return PluginState.PRESENT_CORRECT, current
    return PluginState.PRESENT_WRONG_REVISION, current


class Reconciler:
    """Drives one plugin at a time from its detected state to its target commit."""

    def __init__(
        self,
        vcs: VcsClient,
        fs: Filesystem,
        install_dir: Optional[str] = None,
        verbose: bool = False,
    ):
        self.vcs = vcs
        self.fs = fs
        self.install_dir = install_dir
        self.verbose = verbose

    def _step(self, message: str) -> None:
        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)

    def path_for(self, spec: PluginSpec) -> str:
        return resolve_plugin_path(spec.name, self.install_dir)

    def reconcile(
        self,
        spec: PluginSpec,
        previous: Optional[InstalledRecord] = None,
        path: Optional[str] = None,
    ) -> ReconciliationOutcome:
        """Converge one plugin on its declared commit.

        ``path`` defaults to the plugin's directory under the install dir.
        """
        path = path or self.path_for(spec)
        state, current = inspect_state(spec, path, self.vcs, self.fs, previous)
        self._step(f"{spec.name}: detected {state.value} at {path}")

        if state is PluginState.PRESENT_CORRECT:
            return ReconciliationOutcome(
                spec=spec,
                verdict=Verdict.SKIPPED,
                detail=f"{spec.name} already at commit {spec.short_commit}",
                state=state,
                path=path,
                previous_commit=current,
            )

        if state is PluginState.PRESENT_WRONG_REVISION:
            return self._update(spec, path, current)

        if state is PluginState.PRESENT_CORRUPT:
            return self.repair(spec, path)

        return self._install(spec, path)

    def repair(self, spec: PluginSpec, path: Optional[str] = None) -> ReconciliationOutcome:
        """Wipe whatever is at ``path`` and install ``spec`` from scratch."""
        path = path or self.path_for(spec)
        state = PluginState.PRESENT_CORRUPT
        try:
            if self.fs.exists(path):
                self._step(f"{spec.name}: removing corrupted installation at {path}")
                self.fs.remove_recursive(path)
            self._clone_and_checkout(spec, path)
        except (VcsError, IoError) as e:
            return self._failed(spec, path, state, e, action="repair")

        return ReconciliationOutcome(
            spec=spec,
            verdict=Verdict.INSTALLED,
            detail=(
                f"Installed {spec.name} at commit {spec.short_commit} "
                f"(repaired corrupted installation)"
            ),
            state=state,
            path=path,
        )

    def _install(self, spec: PluginSpec, path: str) -> ReconciliationOutcome:
        state = PluginState.ABSENT
        try:
            self._clone_and_checkout(spec, path)
        except (VcsError, IoError) as e:
            return self._failed(spec, path, state, e, action="install")

        return ReconciliationOutcome(
            spec=spec,
            verdict=Verdict.INSTALLED,
            detail=f"Installed {spec.name} at commit {spec.short_commit}",
            state=state,
            path=path,
        )

    def _update(self, spec: PluginSpec, path: str, current: Optional[str]) -> ReconciliationOutcome:
        state = PluginState.PRESENT_WRONG_REVISION
        previous_short = (current or "")[:8]
        try:
            self._step(f"{spec.name}: checking out {spec.commit}")
            self.vcs.checkout(path, spec.commit)
        except VcsError as e:
            return self._failed(spec, path, state, e, action="update", previous_commit=current)

        return ReconciliationOutcome(
            spec=spec,
            verdict=Verdict.UPDATED,
            detail=f"Updated {spec.name} from {previous_short} to {spec.short_commit}",
            state=state,
            path=path,
            previous_commit=current,
        )

    def _clone_and_checkout(self, spec: PluginSpec, path: str) -> None:
        """Clone and check out; on failure remove the partial clone."""
        try:
            self._step(f"{spec.name}: cloning {spec.repo}")
            self.vcs.clone(spec.repo, path)
            self._step(f"{spec.name}: checking out {spec.commit}")
            self.vcs.checkout(path, spec.commit)
        except VcsError:
            self._discard_partial(spec, path)
            raise

    def _discard_partial(self, spec: PluginSpec, path: str) -> None:
        if not self.fs.exists(path):
            return
        try:
            self.fs.remove_recursive(path)
            self._step(f"{spec.name}: removed partial clone at {path}")
        except IoError as e:
            logger.warning(f"{spec.name}: could not remove partial clone at {path}: {e}")

    def _failed(
        self,
        spec: PluginSpec,
        path: str,
        state: PluginState,
        cause: RevenantError,
        action: str,
        previous_commit: Optional[str] = None,
    ) -> ReconciliationOutcome:
        logger.debug(f"{spec.name}: {action} failed: {cause}")
        return ReconciliationOutcome(
            spec=spec,
            verdict=Verdict.FAILED,
            detail=f"Failed to {action} {spec.name}: {describe(cause)}",
            state=state,
            path=path,
            cause=cause,
            previous_commit=previous_commit,
        )
