"""Match bank payoff lines one-to-one with single card cycles."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from decimal import Decimal

from charge_recon.matching.base import (
    MatchResult,
    allowed_difference,
    in_charge_window,
    within_tolerance,
)
from charge_recon.models import (
    CREDIT_CHARGE,
    MATCH_FULL,
    MATCH_MULTI,
    MATCH_NONE,
    CycleSummary,
    ReconcileOptions,
    TransactionLine,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A possible (bank line, card cycle) pairing."""

    line_index: int
    cycle: CycleSummary
    diff: Decimal
    pattern_matched: bool


Assigner = Callable[[list[Candidate]], dict[int, Candidate]]


def collect_candidates(
    lines: list[TransactionLine],
    cycles: list[CycleSummary],
    patterns: list[re.Pattern[str]],
    options: ReconcileOptions,
) -> list[Candidate]:
    """
    List every bank expense line / per-card cycle pair that could match.

    A pair qualifies when the cycle's charge date is within the date
    window of the line and the amounts agree within tolerance.
    """
    per_card = [c for c in cycles if c.is_matchable]
    candidates: list[Candidate] = []

    for idx, line in enumerate(lines):
        if not line.is_bank_expense:
            continue
        window = [c for c in per_card if in_charge_window(line.date, c.charge_date, options)]
        if not window:
            continue

        pattern_matched = any(p.search(line.description) for p in patterns)
        for cycle in window:
            diff = abs(line.amount - cycle.net_charge)
            if diff <= allowed_difference(cycle.net_charge, options):
                candidates.append(Candidate(idx, cycle, diff, pattern_matched))

    return candidates


def assign_greedy(candidates: list[Candidate]) -> dict[int, Candidate]:
    """
    Claim candidates in priority order, one cycle per line and vice versa.

    Pattern-confirmed candidates go first, then the smallest amount
    difference. The result is not guaranteed to be a global optimum; a
    bipartite assignment over the same candidates can be passed to
    match_single_cycles instead.

    Returns:
        Mapping of line index to its chosen candidate
    """
    ordered = sorted(candidates, key=lambda c: (not c.pattern_matched, c.diff))
    taken_cycles: set[str] = set()
    chosen: dict[int, Candidate] = {}

    for cand in ordered:
        if cand.cycle.cycle_key in taken_cycles or cand.line_index in chosen:
            continue
        taken_cycles.add(cand.cycle.cycle_key)
        chosen[cand.line_index] = cand

    return chosen


def match_single_cycles(
    lines: list[TransactionLine],
    cycles: list[CycleSummary],
    patterns: list[re.Pattern[str]],
    options: ReconcileOptions,
    assign: Assigner = assign_greedy,
) -> MatchResult:
    """
    Mark bank lines that pay off exactly one card cycle.

    Args:
        lines: All transaction lines
        cycles: Cycles from compute_charge_cycles
        patterns: Compiled description patterns (may be empty)
        options: Date window and amount tolerance
        assign: Assignment policy over the candidate list

    Returns:
        MatchResult with new line and cycle lists; inputs are untouched
    """
    if not cycles:
        return MatchResult(lines=list(lines), cycles=list(cycles))

    candidates = collect_candidates(lines, cycles, patterns, options)
    chosen = assign(candidates)
    logger.debug("Exact matching: %d candidates, %d assigned", len(candidates), len(chosen))

    matched_amounts: dict[str, Decimal] = {}
    matched_ids: dict[str, tuple[str, ...]] = {}
    updated_lines: list[TransactionLine] = []

    for idx, line in enumerate(lines):
        cand = chosen.get(idx)
        if cand is None:
            updated_lines.append(line)
            continue

        cycle = cand.cycle
        key = cycle.cycle_key
        matched_amounts[key] = matched_amounts.get(key, Decimal("0")) + line.amount
        matched_ids[key] = matched_ids.get(key, ()) + (line.id,)
        updated_lines.append(
            replace(
                line,
                transaction_type=CREDIT_CHARGE,
                neutral=True,
                related_transaction_ids=cycle.transaction_ids,
                match_reason="pattern+amount" if cand.pattern_matched else "amount",
                matched_card_last4=cycle.card_last4,
                matched_cycle_keys=(key,),
            )
        )

    updated_cycles: list[CycleSummary] = []
    for cycle in cycles:
        amount = matched_amounts.get(cycle.cycle_key, Decimal("0"))
        if not cycle.is_matchable or amount == 0:
            updated_cycles.append(
                replace(
                    cycle,
                    bank_match_status=MATCH_NONE,
                    bank_matched_amount=Decimal("0"),
                    bank_transaction_ids=(),
                )
            )
            continue

        bank_ids = matched_ids[cycle.cycle_key]
        if within_tolerance(amount, cycle.net_charge, options):
            status = MATCH_MULTI if len(bank_ids) > 1 else MATCH_FULL
        else:
            # No partial status: an out-of-tolerance total stays unmatched
            status = MATCH_NONE
        updated_cycles.append(
            replace(
                cycle,
                bank_match_status=status,
                bank_matched_amount=amount,
                bank_transaction_ids=bank_ids,
            )
        )

    return MatchResult(lines=updated_lines, cycles=updated_cycles)
