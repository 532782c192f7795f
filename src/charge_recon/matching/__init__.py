"""Bank payoff matchers."""

from charge_recon.matching.base import (
    MatchResult,
    allowed_difference,
    in_charge_window,
    within_tolerance,
)
from charge_recon.matching.combined import match_combined_cycles
from charge_recon.matching.exact import assign_greedy, match_single_cycles

__all__ = [
    "MatchResult",
    "allowed_difference",
    "assign_greedy",
    "in_charge_window",
    "match_combined_cycles",
    "match_single_cycles",
    "within_tolerance",
]
