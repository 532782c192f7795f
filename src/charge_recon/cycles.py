"""Aggregate card lines into billing-cycle summaries."""

import logging
from dataclasses import replace
from datetime import date

from charge_recon.models import EXPENSE, SOURCE_CARD, CycleSummary, TransactionLine

logger = logging.getLogger(__name__)


def compute_charge_cycles(lines: list[TransactionLine]) -> list[CycleSummary]:
    """
    Group card lines into per-card and all-cards billing cycles.

    Per-card cycles are keyed on (effective charge date, card suffix) and
    returned in first-seen order, followed by one all-cards cycle per
    charge date whose totals are the sum of that date's per-card cycles.

    Args:
        lines: All transaction lines; non-card lines are ignored

    Returns:
        List of CycleSummary objects (empty if there are no card lines)
    """
    by_pair: dict[tuple[date, str], CycleSummary] = {}

    for line in lines:
        if line.source != SOURCE_CARD:
            continue
        key = (line.effective_charge_date, line.card_last4 or "")
        cycle = by_pair.get(key)
        if cycle is None:
            cycle = CycleSummary(charge_date=key[0], card_last4=key[1])

        if line.direction == EXPENSE:
            cycle = replace(cycle, total_expenses=cycle.total_expenses + line.amount)
        else:
            cycle = replace(cycle, total_refunds=cycle.total_refunds + line.amount)
        by_pair[key] = replace(cycle, transaction_ids=cycle.transaction_ids + (line.id,))

    by_date: dict[date, CycleSummary] = {}
    for cycle in by_pair.values():
        combined = by_date.get(cycle.charge_date)
        if combined is None:
            combined = CycleSummary(charge_date=cycle.charge_date, card_last4=None)
        by_date[cycle.charge_date] = replace(
            combined,
            total_expenses=combined.total_expenses + cycle.total_expenses,
            total_refunds=combined.total_refunds + cycle.total_refunds,
            transaction_ids=combined.transaction_ids + cycle.transaction_ids,
        )

    logger.debug(
        "Computed %d card cycles over %d charge dates", len(by_pair), len(by_date)
    )
    return [*by_pair.values(), *by_date.values()]
