"""Reconciler that runs the full credit-charge matching pipeline."""

import logging

from charge_recon.cycles import compute_charge_cycles
from charge_recon.matching import match_combined_cycles, match_single_cycles
from charge_recon.matching.exact import Assigner, assign_greedy
from charge_recon.models import ReconcileOptions, ReconcileResult, TransactionLine
from charge_recon.patterns import (
    PatternDirectory,
    compile_pattern_rules,
    load_pattern_rules,
)

logger = logging.getLogger(__name__)


class ChargeReconciler:
    """
    Link bank payoff lines to the card cycles they settle.

    Usage:
        reconciler = ChargeReconciler(LocalDirectory(Path("~/statements")))
        result = reconciler.reconcile(lines)
        payoffs = result.payoff_lines
    """

    def __init__(
        self,
        directory: PatternDirectory | None = None,
        options: ReconcileOptions | None = None,
        assign: Assigner = assign_greedy,
    ) -> None:
        """
        Initialize reconciler.

        Args:
            directory: Directory capability holding the pattern rules file
            options: Date window and tolerance (defaults if omitted)
            assign: Assignment policy for single-cycle matching
        """
        self.directory = directory
        self.options = options or ReconcileOptions()
        self.assign = assign

    def reconcile(self, lines: list[TransactionLine]) -> ReconcileResult:
        """
        Aggregate cycles, then run exact and combined matching in order.

        Args:
            lines: All parsed transaction lines

        Returns:
            ReconcileResult with the updated lines and cycles
        """
        # Classifications from an earlier run are recomputed, never carried over
        lines = [line.unclassified() for line in lines]
        cycles = compute_charge_cycles(lines)
        if not cycles:
            logger.debug("No card lines, skipping payoff matching")
            return ReconcileResult(lines=list(lines), cycles=[])

        patterns = compile_pattern_rules(load_pattern_rules(self.directory))

        exact = match_single_cycles(lines, cycles, patterns, self.options, self.assign)
        final = match_combined_cycles(exact.lines, exact.cycles, self.options)

        result = ReconcileResult(lines=final.lines, cycles=final.cycles)
        logger.info(
            "Reconciled %d lines: %d payoffs, %d of %d card cycles unmatched",
            len(result.lines),
            len(result.payoff_lines),
            len(result.unmatched_cycles),
            sum(1 for c in result.cycles if c.is_matchable),
        )
        return result
