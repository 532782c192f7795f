"""Data models for transaction lines, billing cycles and pattern rules."""

import re
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

# Line origins
SOURCE_BANK = "bank"
SOURCE_CARD = "card"

# Directions
EXPENSE = "expense"
INCOME = "income"

# Line classifications
REGULAR = "regular"
CREDIT_CHARGE = "credit_charge"
CREDIT_CHARGE_COMBINED = "credit_charge_combined"
PAYOFF_TYPES = (CREDIT_CHARGE, CREDIT_CHARGE_COMBINED)

# Cycle bank-match statuses
MATCH_NONE = "none"
MATCH_FULL = "full"
MATCH_MULTI = "multi"
MATCH_GROUPED = "grouped"

# Cycle key suffix for the all-cards aggregate
ALL_CARDS = "ALL"

PATTERN_CONTAINS = "contains"
PATTERN_REGEX = "regex"


def _fmt_date(value: date | None) -> str:
    return value.isoformat() if value else ""


@dataclass(frozen=True)
class TransactionLine:
    """A single parsed bank or card movement."""

    id: str
    source: str  # bank, card
    date: date
    amount: Decimal
    direction: str  # expense, income
    description: str = ""
    charge_date: date | None = None
    card_last4: str | None = None
    transaction_type: str = REGULAR
    neutral: bool = False
    related_transaction_ids: tuple[str, ...] = ()
    match_reason: str | None = None  # pattern+amount, amount, combined_<n>
    matched_card_last4: str | None = None
    matched_cycle_keys: tuple[str, ...] = ()
    matched_charge_date: date | None = None
    matched_combo_size: int | None = None

    def __post_init__(self) -> None:
        """Validate and normalize line data."""
        if self.source not in (SOURCE_BANK, SOURCE_CARD):
            raise ValueError(f"Unknown source: {self.source!r}")
        if self.direction not in (EXPENSE, INCOME):
            raise ValueError(f"Unknown direction: {self.direction!r}")
        if self.card_last4 == ALL_CARDS:
            raise ValueError(f"Card suffix {ALL_CARDS!r} is reserved for the all-cards cycle")
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except InvalidOperation as e:
                raise ValueError(f"Invalid amount: {self.amount!r}") from e
        # Amounts are magnitudes; the sign lives in direction
        if self.amount < 0:
            object.__setattr__(self, "amount", -self.amount)
        if not self.description.strip():
            object.__setattr__(self, "description", "(No description)")

    @property
    def is_bank_expense(self) -> bool:
        """Return True for bank debits, the only payoff candidates."""
        return self.source == SOURCE_BANK and self.direction == EXPENSE

    @property
    def is_payoff(self) -> bool:
        """Return True if this line settles one or more card cycles."""
        return self.transaction_type in PAYOFF_TYPES

    @property
    def effective_charge_date(self) -> date:
        """Charge date if present, otherwise the transaction date."""
        return self.charge_date or self.date

    def unclassified(self) -> "TransactionLine":
        """Return a copy with every payoff classification field cleared."""
        return replace(
            self,
            transaction_type=REGULAR,
            neutral=False,
            related_transaction_ids=(),
            match_reason=None,
            matched_card_last4=None,
            matched_cycle_keys=(),
            matched_charge_date=None,
            matched_combo_size=None,
        )

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for CSV output."""
        return {
            "id": self.id,
            "source": self.source,
            "date": self.date.isoformat(),
            "charge_date": _fmt_date(self.charge_date),
            "amount": str(self.amount),
            "direction": self.direction,
            "description": self.description,
            "card_last4": self.card_last4 or "",
            "transaction_type": self.transaction_type,
            "neutral": "true" if self.neutral else "false",
            "related_transaction_ids": " ".join(self.related_transaction_ids),
            "match_reason": self.match_reason or "",
            "matched_cycle_keys": " ".join(self.matched_cycle_keys),
        }


@dataclass(frozen=True)
class CycleSummary:
    """Aggregate of card lines settled together on one charge date.

    A cycle with ``card_last4=None`` is the informational all-cards
    aggregate for its charge date.
    """

    charge_date: date
    card_last4: str | None
    total_expenses: Decimal = Decimal("0")
    total_refunds: Decimal = Decimal("0")
    transaction_ids: tuple[str, ...] = ()
    bank_match_status: str = MATCH_NONE  # none, full, multi, grouped
    bank_matched_amount: Decimal = Decimal("0")
    bank_transaction_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.card_last4 == ALL_CARDS:
            raise ValueError(f"Card suffix {ALL_CARDS!r} is reserved for the all-cards cycle")

    @property
    def net_charge(self) -> Decimal:
        """Total expenses minus total refunds."""
        return self.total_expenses - self.total_refunds

    @property
    def cycle_key(self) -> str:
        """Unique key: ``date::card`` or ``date::ALL``."""
        suffix = ALL_CARDS if self.card_last4 is None else self.card_last4
        return f"{self.charge_date.isoformat()}::{suffix}"

    @property
    def is_combined(self) -> bool:
        """Return True for the all-cards aggregate."""
        return self.card_last4 is None

    @property
    def is_matchable(self) -> bool:
        """Only per-card cycles with a known card suffix are matching targets."""
        return bool(self.card_last4)

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for CSV output."""
        return {
            "cycle_key": self.cycle_key,
            "charge_date": self.charge_date.isoformat(),
            "card_last4": self.card_last4 or "",
            "total_expenses": str(self.total_expenses),
            "total_refunds": str(self.total_refunds),
            "net_charge": str(self.net_charge),
            "transactions": str(len(self.transaction_ids)),
            "bank_match_status": self.bank_match_status,
            "bank_matched_amount": str(self.bank_matched_amount),
            "bank_transaction_ids": " ".join(self.bank_transaction_ids),
        }


@dataclass(frozen=True)
class PatternRule:
    """Description-matching rule for recognizing card payoff lines."""

    value: str
    kind: str = PATTERN_CONTAINS  # contains, regex
    active: bool = True

    @classmethod
    def from_dict(cls, data: Any) -> "PatternRule | None":
        """Build a rule from its persisted form.

        Returns None for entries that are not a mapping, have no string
        value, or name an unknown kind.
        """
        if not isinstance(data, dict):
            return None
        value = data.get("value")
        if not isinstance(value, str):
            return None
        kind = data.get("type") or PATTERN_CONTAINS
        if kind not in (PATTERN_CONTAINS, PATTERN_REGEX):
            return None
        active = data.get("active", True)
        return cls(value=value, kind=kind, active=active is not False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON form."""
        return {"value": self.value, "type": self.kind, "active": self.active}

    def compile(self) -> re.Pattern[str] | None:
        """Compile to a case-insensitive matcher, or None if unusable."""
        value = self.value.strip()
        if not value or not self.active:
            return None
        if self.kind == PATTERN_REGEX:
            try:
                return re.compile(value, re.IGNORECASE)
            except re.error:
                return None
        return re.compile(re.escape(value), re.IGNORECASE)


@dataclass(frozen=True)
class ReconcileOptions:
    """Date window and amount tolerance used by both matchers."""

    days_before_charge: int = 1
    days_after_charge: int = 6
    tolerance_ratio: Decimal = Decimal("0.01")
    min_tolerance_amount: Decimal = Decimal("2")

    def __post_init__(self) -> None:
        """Coerce numeric types and reject negative values."""
        object.__setattr__(self, "days_before_charge", int(self.days_before_charge))
        object.__setattr__(self, "days_after_charge", int(self.days_after_charge))
        object.__setattr__(self, "tolerance_ratio", Decimal(str(self.tolerance_ratio)))
        object.__setattr__(
            self, "min_tolerance_amount", Decimal(str(self.min_tolerance_amount))
        )
        for name in (
            "days_before_charge",
            "days_after_charge",
            "tolerance_ratio",
            "min_tolerance_amount",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


@dataclass
class ReconcileResult:
    """Reconciled lines and cycles returned to the caller."""

    lines: list[TransactionLine] = field(default_factory=list)
    cycles: list[CycleSummary] = field(default_factory=list)

    @property
    def payoff_lines(self) -> list[TransactionLine]:
        """Bank lines recognized as card payoffs."""
        return [line for line in self.lines if line.is_payoff]

    @property
    def unmatched_cycles(self) -> list[CycleSummary]:
        """Per-card cycles that no bank line settled."""
        return [
            c for c in self.cycles
            if c.is_matchable and c.bank_match_status == MATCH_NONE
        ]
