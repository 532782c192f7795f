"""Tests for line-item loading and result writing."""

import csv
from datetime import date
from decimal import Decimal
from pathlib import Path

from charge_recon.cycles import compute_charge_cycles
from charge_recon.loader import LineItemLoader, write_cycles_csv, write_lines_csv

HEADER = "id,source,date,charge_date,amount,direction,description,card_last4\n"


class TestLineItemLoader:
    """Tests for LineItemLoader."""

    def test_parse_rows(self) -> None:
        """Test valid rows become transaction lines."""
        content = (
            HEADER
            + "c1,card,20/02/24,05/03/24,500,expense,GROCER,1234\n"
            + "b1,bank,08/03/24,,-500.00,expense,CARD CO PAYMENT,\n"
        )
        loader = LineItemLoader()
        lines = loader.parse(content)

        assert loader.errors == []
        assert len(lines) == 2
        card, bank = lines
        assert card.source == "card"
        assert card.charge_date == date(2024, 3, 5)
        assert card.card_last4 == "1234"
        assert bank.charge_date is None
        assert bank.card_last4 is None
        assert bank.amount == Decimal("500.00")

    def test_credit_source_alias(self) -> None:
        """Test 'credit' is accepted as a card source."""
        lines = LineItemLoader().parse(HEADER + "c1,Credit,20/02/24,,10,Expense,X,1234\n")
        assert lines[0].source == "card"
        assert lines[0].direction == "expense"

    def test_bad_rows_collected(self) -> None:
        """Test invalid rows are skipped and reported with row numbers."""
        content = (
            HEADER
            + "c1,card,20/02/24,,10,expense,OK,1234\n"
            + "c2,card,not-a-date,,10,expense,BAD,1234\n"
            + "c3,card,20/02/24,,ten,expense,BAD,1234\n"
            + "c4,atm,20/02/24,,10,expense,BAD,\n"
            + ",bank,20/02/24,,10,expense,BAD,\n"
        )
        loader = LineItemLoader()
        lines = loader.parse(content, source_name="cards.csv")

        assert [line.id for line in lines] == ["c1"]
        assert [loc for loc, _ in loader.errors] == [
            "cards.csv:3",
            "cards.csv:4",
            "cards.csv:5",
            "cards.csv:6",
        ]

    def test_reserved_card_suffix_rejected(self) -> None:
        """Test a card suffix equal to the all-cards key is a row error."""
        loader = LineItemLoader()
        lines = loader.parse(HEADER + "c1,card,20/02/24,05/03/24,10,expense,X,ALL\n")
        assert lines == []
        assert loader.errors[0][0] == "<table>:2"
        assert "reserved" in loader.errors[0][1]

    def test_missing_columns(self) -> None:
        """Test a table without required columns is rejected as a whole."""
        loader = LineItemLoader()
        assert loader.parse("id,date\nb1,08/03/24\n", source_name="x.csv") == []
        assert loader.errors == [("x.csv", "Missing columns: source, amount, direction")]

    def test_load_files_skips_duplicate_ids(self, tmp_path: Path) -> None:
        """Test ids repeated across files are loaded once."""
        first = tmp_path / "a.csv"
        second = tmp_path / "b.csv"
        first.write_text(HEADER + "b1,bank,08/03/24,,500,expense,X,\n", encoding="utf-8")
        second.write_text(HEADER + "b1,bank,08/03/24,,500,expense,X,\n", encoding="utf-8")

        loader = LineItemLoader()
        lines = loader.load_files([first, second, tmp_path / "missing.csv"])

        assert len(lines) == 1
        assert len(loader.errors) == 2


class TestWriters:
    """Tests for CSV writers."""

    def test_write_lines_and_cycles(self, tmp_path: Path, card_line, bank_line) -> None:
        """Test both writers produce a header and one row per record."""
        lines = [card_line("c1", "20/02/24", "500"), bank_line("b1", "08/03/24", "500")]
        cycles = compute_charge_cycles(lines)

        lines_path = tmp_path / "lines.csv"
        cycles_path = tmp_path / "cycles.tsv"
        write_lines_csv(lines, lines_path)
        write_cycles_csv(cycles, cycles_path, delimiter="\t")

        with open(lines_path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["id"] for r in rows] == ["c1", "b1"]
        assert rows[1]["neutral"] == "false"

        with open(cycles_path, newline="", encoding="utf-8") as f:
            cycle_rows = list(csv.DictReader(f, delimiter="\t"))
        assert [r["cycle_key"] for r in cycle_rows] == ["2024-02-20::1234", "2024-02-20::ALL"]
        assert cycle_rows[0]["net_charge"] == "500"
