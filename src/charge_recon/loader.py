"""Read parsed line items from tables and write reconciled results."""

import csv
import logging
from io import StringIO
from pathlib import Path

from charge_recon.models import SOURCE_CARD, CycleSummary, TransactionLine
from charge_recon.utils import parse_amount, parse_date, read_table

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("id", "source", "date", "amount", "direction")

# Accepted spellings of the source column
SOURCE_ALIASES = {"credit": SOURCE_CARD, "credit_card": SOURCE_CARD}

CYCLE_FIELDS = [
    "cycle_key",
    "charge_date",
    "card_last4",
    "total_expenses",
    "total_refunds",
    "net_charge",
    "transactions",
    "bank_match_status",
    "bank_matched_amount",
    "bank_transaction_ids",
]

LINE_FIELDS = [
    "id",
    "source",
    "date",
    "charge_date",
    "amount",
    "direction",
    "description",
    "card_last4",
    "transaction_type",
    "neutral",
    "related_transaction_ids",
    "match_reason",
    "matched_cycle_keys",
]


class LineItemLoader:
    """
    Load already-parsed transaction lines from CSV or .xls tables.

    Expected columns: id, source, date, charge_date, amount, direction,
    description, card_last4. Rows that fail validation are skipped and
    reported through ``errors``.

    Usage:
        loader = LineItemLoader()
        lines = loader.load_files([Path("bank.csv"), Path("cards.xls")])
    """

    def __init__(self) -> None:
        self._errors: list[tuple[str, str]] = []

    @property
    def errors(self) -> list[tuple[str, str]]:
        """Get list of (location, error_message) for rejected files and rows."""
        return self._errors.copy()

    def load_file(self, filepath: Path) -> list[TransactionLine]:
        """
        Load one table.

        Args:
            filepath: Path to a CSV or .xls file

        Returns:
            List of TransactionLine objects from the valid rows
        """
        try:
            content = read_table(filepath)
        except ValueError as e:
            self._errors.append((str(filepath), str(e)))
            return []

        return self.parse(content, source_name=filepath.name)

    def load_files(self, filepaths: list[Path]) -> list[TransactionLine]:
        """Load several tables, keeping file order and skipping repeated ids."""
        self._errors = []
        lines: list[TransactionLine] = []
        seen: set[str] = set()

        for filepath in filepaths:
            for line in self.load_file(filepath):
                if line.id in seen:
                    self._errors.append((filepath.name, f"Duplicate id {line.id}"))
                    continue
                seen.add(line.id)
                lines.append(line)

        return lines

    def parse(self, content: str, source_name: str = "<table>") -> list[TransactionLine]:
        """Parse CSV content with a header row into transaction lines."""
        reader = csv.DictReader(StringIO(content.lstrip("\ufeff")))
        header = [h.strip().lower() for h in reader.fieldnames or []]
        missing = [c for c in REQUIRED_COLUMNS if c not in header]
        if missing:
            self._errors.append((source_name, f"Missing columns: {', '.join(missing)}"))
            return []

        lines: list[TransactionLine] = []
        # Row 1 is the header
        for row_num, raw in enumerate(reader, start=2):
            row = {k.strip().lower(): (v or "").strip() for k, v in raw.items() if k}
            try:
                lines.append(self._parse_row(row))
            except ValueError as e:
                self._errors.append((f"{source_name}:{row_num}", str(e)))

        logger.debug("Loaded %d lines from %s", len(lines), source_name)
        return lines

    @staticmethod
    def _parse_row(row: dict[str, str]) -> TransactionLine:
        if not row.get("id"):
            raise ValueError("Missing id")

        line_date = parse_date(row["date"])
        if line_date is None:
            raise ValueError(f"Invalid date: {row['date']!r}")

        amount = parse_amount(row["amount"])
        if amount is None:
            raise ValueError(f"Invalid amount: {row['amount']!r}")

        source = row["source"].lower()
        charge_date = None
        if row.get("charge_date"):
            charge_date = parse_date(row["charge_date"])
            if charge_date is None:
                raise ValueError(f"Invalid charge date: {row['charge_date']!r}")

        return TransactionLine(
            id=row["id"],
            source=SOURCE_ALIASES.get(source, source),
            date=line_date,
            amount=amount,
            direction=row["direction"].lower(),
            description=row.get("description", ""),
            charge_date=charge_date,
            card_last4=row.get("card_last4") or None,
        )


def write_lines_csv(lines: list[TransactionLine], output_path: Path, delimiter: str = ",") -> None:
    """Write reconciled lines with their classification fields."""
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=LINE_FIELDS, delimiter=delimiter)
        writer.writeheader()
        for line in lines:
            writer.writerow(line.to_dict())


def write_cycles_csv(cycles: list[CycleSummary], output_path: Path, delimiter: str = ",") -> None:
    """Write billing-cycle summaries with their bank-match status."""
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CYCLE_FIELDS, delimiter=delimiter)
        writer.writeheader()
        for cycle in cycles:
            writer.writerow(cycle.to_dict())
