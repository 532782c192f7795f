"""Expense and income totals that skip neutral payoff lines."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from charge_recon.models import EXPENSE, TransactionLine


@dataclass(frozen=True)
class Totals:
    """Expense and income sums over non-neutral lines."""

    expenses: Decimal
    income: Decimal

    @property
    def net(self) -> Decimal:
        """Income minus expenses."""
        return self.income - self.expenses


def compute_totals(lines: list[TransactionLine]) -> Totals:
    """Sum expenses and income, excluding neutral lines."""
    expenses = Decimal("0")
    income = Decimal("0")
    for line in lines:
        if line.neutral:
            continue
        if line.direction == EXPENSE:
            expenses += line.amount
        else:
            income += line.amount
    return Totals(expenses=expenses, income=income)


def format_money(amount: Decimal) -> str:
    """Format an amount with two decimals."""
    return str(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
