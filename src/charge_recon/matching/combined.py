"""Match one bank line against several card cycles paid together."""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from itertools import combinations

from charge_recon.matching.base import MatchResult, in_charge_window, within_tolerance
from charge_recon.models import (
    CREDIT_CHARGE_COMBINED,
    MATCH_GROUPED,
    MATCH_NONE,
    REGULAR,
    CycleSummary,
    ReconcileOptions,
    TransactionLine,
)

logger = logging.getLogger(__name__)

# Larger combinations are tried first: they explain more of the amount
COMBO_SIZES = (4, 3, 2)


def _find_combination(
    line: TransactionLine,
    cycles_by_date: dict[date, list[CycleSummary]],
    consumed: set[str],
    options: ReconcileOptions,
) -> tuple[date, tuple[CycleSummary, ...]] | None:
    for charge_date, date_cycles in cycles_by_date.items():
        if not in_charge_window(line.date, charge_date, options):
            continue
        pool = [c for c in date_cycles if c.cycle_key not in consumed]
        for size in COMBO_SIZES:
            if len(pool) < size:
                continue
            for combo in combinations(pool, size):
                total = sum((c.net_charge for c in combo), Decimal("0"))
                if within_tolerance(line.amount, total, options):
                    return charge_date, combo
    return None


def match_combined_cycles(
    lines: list[TransactionLine],
    cycles: list[CycleSummary],
    options: ReconcileOptions,
) -> MatchResult:
    """
    Mark bank lines that pay off 2-4 unmatched cycles sharing a charge date.

    Only per-card cycles still at status "none" take part, and only bank
    expense lines still classified as regular are examined. The first
    combination within tolerance wins, trying sizes 4, 3 then 2. A cycle
    grouped under one bank line is not offered to later lines.

    Args:
        lines: Lines after single-cycle matching
        cycles: Cycles after single-cycle matching
        options: Date window and amount tolerance

    Returns:
        MatchResult with new line and cycle lists; inputs are untouched
    """
    if not cycles:
        return MatchResult(lines=list(lines), cycles=list(cycles))

    cycles_by_date: dict[date, list[CycleSummary]] = {}
    for cycle in cycles:
        if cycle.is_matchable and cycle.bank_match_status == MATCH_NONE:
            cycles_by_date.setdefault(cycle.charge_date, []).append(cycle)

    cycle_map: dict[str, CycleSummary] = {c.cycle_key: c for c in cycles}
    consumed: set[str] = set()
    updated_lines: list[TransactionLine] = []

    for line in lines:
        if not line.is_bank_expense or line.transaction_type != REGULAR:
            updated_lines.append(line)
            continue

        found = _find_combination(line, cycles_by_date, consumed, options)
        if found is None:
            updated_lines.append(line)
            continue

        charge_date, combo = found
        related: tuple[str, ...] = ()
        for cycle in combo:
            key = cycle.cycle_key
            consumed.add(key)
            existing = cycle_map[key]
            bank_ids = existing.bank_transaction_ids
            if line.id not in bank_ids:
                bank_ids = bank_ids + (line.id,)
            cycle_map[key] = replace(
                existing,
                bank_match_status=MATCH_GROUPED,
                bank_matched_amount=cycle.net_charge,
                bank_transaction_ids=bank_ids,
            )
            related += cycle.transaction_ids

        logger.debug(
            "Line %s settles %d cycles charged on %s", line.id, len(combo), charge_date
        )
        updated_lines.append(
            replace(
                line,
                transaction_type=CREDIT_CHARGE_COMBINED,
                neutral=True,
                related_transaction_ids=related,
                matched_cycle_keys=tuple(c.cycle_key for c in combo),
                matched_charge_date=charge_date,
                matched_combo_size=len(combo),
                match_reason=f"combined_{len(combo)}",
            )
        )

    return MatchResult(lines=updated_lines, cycles=list(cycle_map.values()))
