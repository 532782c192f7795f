"""charge-recon - Keep card payoffs from being counted twice."""

from charge_recon.models import (
    CycleSummary,
    PatternRule,
    ReconcileOptions,
    ReconcileResult,
    TransactionLine,
)
from charge_recon.patterns import LocalDirectory, PatternDirectory
from charge_recon.reconciler import ChargeReconciler

__version__ = "0.1.0"
__all__ = [
    "ChargeReconciler",
    "CycleSummary",
    "LocalDirectory",
    "PatternDirectory",
    "PatternRule",
    "ReconcileOptions",
    "ReconcileResult",
    "TransactionLine",
]
