"""
Pydantic models and result types for revenant.
"""

from revenant.models.ledger import LOCK_FILE_VERSION, Ledger
from revenant.models.outcome import (
    INTERRUPTED_EXIT_CODE,
    PluginState,
    ReconciliationOutcome,
    RunStatus,
    Verdict,
)
from revenant.models.plugin import InstalledRecord, PluginSpec

__all__ = [
    # Declared / recorded
    "PluginSpec",
    "InstalledRecord",
    "Ledger",
    "LOCK_FILE_VERSION",
    # Results
    "Verdict",
    "PluginState",
    "ReconciliationOutcome",
    "RunStatus",
    "INTERRUPTED_EXIT_CODE",
]
