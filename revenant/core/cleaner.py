"""
Pruning of orphaned plugins (recorded in the lock file, gone from the config).
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from revenant.core.fs import Filesystem
from revenant.lib.errors import IoError, describe
from revenant.models.ledger import Ledger
from revenant.models.plugin import InstalledRecord, PluginSpec

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    removed: list[InstalledRecord] = field(default_factory=list)
    failed: list[tuple[InstalledRecord, str]] = field(default_factory=list)
    ledger: Ledger = field(default_factory=Ledger.empty)


def find_orphans(ledger: Ledger, specs: Iterable[PluginSpec]) -> list[InstalledRecord]:
    """Ledger records with no matching declared plugin."""
    return ledger.orphans(spec.name for spec in specs)


def prune(orphans: list[InstalledRecord], ledger: Ledger, fs: Filesystem) -> PruneResult:
    """Delete orphan directories and drop their ledger records.

    A record whose directory could not be removed stays in the returned
    ledger so the next clean can retry it.
    """
    result = PruneResult(ledger=ledger.snapshot())

    for orphan in orphans:
        try:
            if fs.exists(orphan.path):
                fs.remove_recursive(orphan.path)
            else:
                logger.debug(f"{orphan.name}: directory already removed ({orphan.path})")
        except IoError as e:
            logger.debug(f"{orphan.name}: removal failed: {e}")
            result.failed.append((orphan, describe(e)))
            continue
        result.ledger.remove(orphan.name)
        result.removed.append(orphan)

    if result.removed:
        result.ledger.stamp()
    return result
