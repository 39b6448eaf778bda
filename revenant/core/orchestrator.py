"""
Run orchestration: validate, order, reconcile every plugin, aggregate.

reconcile_all() is the single entry point used by the install and update
commands. Validation and dependency resolution are fail-fast: a
ValidationError propagates before any plugin is touched. After that the run
is best-effort; one plugin failing does not stop the others.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from revenant.core.dependencies import resolve_order
from revenant.core.fs import Filesystem, LocalFilesystem
from revenant.core.git import GitClient, VcsClient
from revenant.core.reconciler import Reconciler, inspect_state
from revenant.core.validator import validate_specs
from revenant.lib.errors import VcsError, describe
from revenant.models.ledger import Ledger, utc_now
from revenant.models.outcome import PluginState, ReconciliationOutcome, RunStatus, Verdict
from revenant.models.plugin import InstalledRecord, PluginSpec

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of one reconcile_all() run."""

    outcomes: list[ReconciliationOutcome] = field(default_factory=list)
    ledger: Ledger = field(default_factory=Ledger.empty)
    status: RunStatus = RunStatus.SUCCESS

    def counts(self) -> dict[Verdict, int]:
        """Number of outcomes per verdict (every verdict present, zero or not)."""
        tally = Counter(outcome.verdict for outcome in self.outcomes)
        return {verdict: tally.get(verdict, 0) for verdict in Verdict}

    @property
    def failures(self) -> list[ReconciliationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    def summary_lines(self) -> list[str]:
        """Human-readable summary with counts per verdict."""
        counts = self.counts()
        failed = counts[Verdict.FAILED]
        succeeded = len(self.outcomes) - failed

        if failed:
            lines = [f"{succeeded} plugin(s) succeeded, {failed} failed"]
            lines.extend(f"  - {outcome.detail}" for outcome in self.failures)
            return lines

        lines = [f"Successfully processed {succeeded} plugin(s)"]
        if counts[Verdict.INSTALLED]:
            lines.append(f"  - {counts[Verdict.INSTALLED]} installed")
        if counts[Verdict.UPDATED]:
            lines.append(f"  - {counts[Verdict.UPDATED]} updated")
        if counts[Verdict.SKIPPED]:
            lines.append(f"  - {counts[Verdict.SKIPPED]} already up-to-date")
        return lines


def aggregate_status(outcomes: Iterable[ReconciliationOutcome]) -> RunStatus:
    """success if nothing failed, else partial_failure."""
    if any(outcome.failed for outcome in outcomes):
        return RunStatus.PARTIAL_FAILURE
    return RunStatus.SUCCESS


def record_outcome(
    ledger: Ledger,
    outcome: ReconciliationOutcome,
    now: str,
) -> None:
    """Upsert the ledger entry for a non-failed outcome; leave failures untouched."""
    if outcome.failed:
        return

    spec = outcome.spec
    previous = ledger.get(spec.name)
    installed_at = now
    if (
        outcome.verdict is Verdict.SKIPPED
        and previous is not None
        and previous.matches(spec)
    ):
        installed_at = previous.installed_at

    ledger.upsert(InstalledRecord.from_spec(spec, path=outcome.path, installed_at=installed_at))


def _fetch_if_behind(
    reconciler: Reconciler,
    spec: PluginSpec,
    previous: Optional[InstalledRecord],
) -> None:
    path = reconciler.path_for(spec)
    state, _ = inspect_state(spec, path, reconciler.vcs, reconciler.fs, previous)
    if state is not PluginState.PRESENT_WRONG_REVISION:
        return
    try:
        reconciler.vcs.fetch(path)
    except VcsError as e:
        # The checkout that follows reports the real failure if the commit is unreachable
        logger.warning(f"{spec.name}: fetch failed: {describe(e)}")


def reconcile_all(
    specs: Iterable[PluginSpec],
    previous_ledger: Optional[Ledger] = None,
    *,
    install_dir: Optional[str] = None,
    vcs: Optional[VcsClient] = None,
    fs: Optional[Filesystem] = None,
    verbose: bool = False,
    clock: Callable[[], str] = utc_now,
    on_outcome: Optional[Callable[[ReconciliationOutcome], None]] = None,
    fetch: bool = False,
) -> RunResult:
    """Reconcile every declared plugin in dependency order.

    Args:
        specs: The declared plugin set.
        previous_ledger: Last persisted snapshot (not mutated).
        install_dir: Install directory override; platform default if None.
        vcs: Version-control client (GitClient if None).
        fs: Filesystem (LocalFilesystem if None).
        verbose: Narrate each step at INFO instead of DEBUG.
        clock: Source of ISO timestamps for new records.
        on_outcome: Called after each plugin, in order, for live progress.
        fetch: Fetch from the remote first for plugins checked out at another
            commit, so a newly pinned commit is reachable.

    Returns:
        RunResult with ordered outcomes, the updated ledger snapshot and
        the aggregate status.

    Raises:
        ValidationError: malformed specs, missing dependency or cycle.
            Nothing has been touched when this is raised.
    """
    specs = validate_specs(specs)
    order = resolve_order(specs)

    reconciler = Reconciler(
        vcs=vcs or GitClient(),
        fs=fs or LocalFilesystem(),
        install_dir=install_dir,
        verbose=verbose,
    )

    ledger = (previous_ledger or Ledger.empty()).snapshot()
    result = RunResult(ledger=ledger)

    for spec in order:
        if fetch:
            _fetch_if_behind(reconciler, spec, ledger.get(spec.name))
        outcome = reconciler.reconcile(spec, ledger.get(spec.name))
        result.outcomes.append(outcome)
        record_outcome(ledger, outcome, clock())

        if outcome.failed:
            logger.info(outcome.detail)
        if on_outcome is not None:
            on_outcome(outcome)

    ledger.stamp(clock())
    result.status = aggregate_status(result.outcomes)
    logger.debug(
        f"Run finished: {result.status.value} "
        f"({', '.join(f'{v.value}={n}' for v, n in result.counts().items())})"
    )
    return result
