"""Shared window and tolerance rules for the payoff matchers."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from charge_recon.models import CycleSummary, ReconcileOptions, TransactionLine


@dataclass
class MatchResult:
    """Lines and cycles produced by one matching stage."""

    lines: list[TransactionLine]
    cycles: list[CycleSummary]


def in_charge_window(bank_date: date, charge_date: date, options: ReconcileOptions) -> bool:
    """
    Check if a bank line falls inside the window around a charge date.

    Uses the real day difference between the two dates, positive when
    the bank line is after the charge date.
    """
    diff = (bank_date - charge_date).days
    return -options.days_before_charge <= diff <= options.days_after_charge


def allowed_difference(target: Decimal, options: ReconcileOptions) -> Decimal:
    """Maximum amount difference accepted against a target net charge."""
    return max(target * options.tolerance_ratio, options.min_tolerance_amount)


def within_tolerance(amount: Decimal, target: Decimal, options: ReconcileOptions) -> bool:
    """Check if amount equals target within the configured tolerance."""
    return abs(amount - target) <= allowed_difference(target, options)
