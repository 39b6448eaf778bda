"""
Core logic: validation, dependency ordering, reconciliation and persistence.
"""

from revenant.core.dependencies import resolve_order
from revenant.core.orchestrator import RunResult, reconcile_all
from revenant.core.reconciler import Reconciler

__all__ = ["resolve_order", "reconcile_all", "RunResult", "Reconciler"]
