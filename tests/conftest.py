"""Pytest configuration and fixtures."""

from collections.abc import Callable
from decimal import Decimal

import pytest

from charge_recon.models import TransactionLine
from charge_recon.utils import parse_date


class MemoryDirectory:
    """In-memory PatternDirectory for tests."""

    def __init__(self, files: dict[str, bytes] | None = None, writable: bool = True) -> None:
        self.files = dict(files or {})
        self.writable = writable
        self.writes: list[str] = []

    def read_file(self, name: str) -> bytes:
        if name not in self.files:
            raise FileNotFoundError(name)
        return self.files[name]

    def write_file(self, name: str, data: bytes) -> None:
        if not self.writable:
            raise PermissionError(name)
        self.writes.append(name)
        self.files[name] = data


LineFactory = Callable[..., TransactionLine]


@pytest.fixture
def memory_directory() -> MemoryDirectory:
    """Return an empty writable in-memory directory."""
    return MemoryDirectory()


@pytest.fixture
def make_directory() -> Callable[..., MemoryDirectory]:
    """Factory for in-memory directories with preset files."""
    return MemoryDirectory


@pytest.fixture
def bank_line() -> LineFactory:
    """Factory for bank expense lines with DD/MM/YY dates."""

    def make(
        line_id: str,
        date_str: str,
        amount: str,
        description: str = "TRANSFER",
        direction: str = "expense",
    ) -> TransactionLine:
        line_date = parse_date(date_str)
        assert line_date is not None
        return TransactionLine(
            id=line_id,
            source="bank",
            date=line_date,
            amount=Decimal(amount),
            direction=direction,
            description=description,
        )

    return make


@pytest.fixture
def card_line() -> LineFactory:
    """Factory for card lines; charge_date defaults to the purchase date."""

    def make(
        line_id: str,
        date_str: str,
        amount: str,
        card: str | None = "1234",
        charge_date: str | None = None,
        direction: str = "expense",
        description: str = "PURCHASE",
    ) -> TransactionLine:
        line_date = parse_date(date_str)
        assert line_date is not None
        return TransactionLine(
            id=line_id,
            source="card",
            date=line_date,
            amount=Decimal(amount),
            direction=direction,
            description=description,
            charge_date=parse_date(charge_date) if charge_date else None,
            card_last4=card,
        )

    return make
