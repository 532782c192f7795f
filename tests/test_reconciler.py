"""End-to-end tests for the reconciler."""

import json
from datetime import date
from decimal import Decimal

from charge_recon import ChargeReconciler, ReconcileOptions, TransactionLine
from charge_recon.patterns import PATTERNS_FILENAME


def card_co_directory(make_directory):
    rules = [{"value": "CARD CO", "type": "contains", "active": True}]
    return make_directory({PATTERNS_FILENAME: json.dumps(rules).encode("utf-8")})


class TestChargeReconciler:
    """Tests for ChargeReconciler."""

    def test_single_card_payoff(self, make_directory, bank_line, card_line) -> None:
        """Test a described payoff of one card cycle."""
        lines = [
            card_line("c1", "20/02/24", "500", card="1234", charge_date="05/03/24"),
            bank_line("b1", "08/03/24", "500", description="CARD CO PAYMENT"),
        ]
        result = ChargeReconciler(card_co_directory(make_directory)).reconcile(lines)

        payoff = result.lines[1]
        assert payoff.transaction_type == "credit_charge"
        assert payoff.match_reason == "pattern+amount"
        cycle = next(c for c in result.cycles if c.cycle_key == "2024-03-05::1234")
        assert cycle.bank_match_status == "full"

    def test_combined_payoff(self, bank_line, card_line) -> None:
        """Test one bank line paying two cards, with no pattern rules."""
        lines = [
            card_line("c1", "20/02/24", "300", card="1234", charge_date="05/03/24"),
            card_line("c2", "21/02/24", "450", card="9876", charge_date="05/03/24"),
            bank_line("b1", "06/03/24", "750", description="DIRECT DEBIT"),
        ]
        result = ChargeReconciler().reconcile(lines)

        payoff = result.lines[2]
        assert payoff.transaction_type == "credit_charge_combined"
        assert payoff.matched_combo_size == 2
        grouped = [c for c in result.cycles if c.bank_match_status == "grouped"]
        assert {c.card_last4 for c in grouped} == {"1234", "9876"}

    def test_neutral_lines_have_related_ids(self, make_directory, bank_line, card_line) -> None:
        """Test neutral is set exactly on payoffs, each with related ids."""
        lines = [
            card_line("c1", "20/02/24", "500", card="1234", charge_date="05/03/24"),
            card_line("c2", "20/02/24", "300", card="5555", charge_date="10/03/24"),
            card_line("c3", "20/02/24", "200", card="6666", charge_date="10/03/24"),
            bank_line("b1", "08/03/24", "500", description="CARD CO PAYMENT"),
            bank_line("b2", "11/03/24", "500"),
            bank_line("b3", "11/03/24", "42"),
        ]
        result = ChargeReconciler(card_co_directory(make_directory)).reconcile(lines)

        for line in result.lines:
            assert line.neutral == line.is_payoff
            if line.neutral:
                assert line.related_transaction_ids
        assert [line.id for line in result.payoff_lines] == ["b1", "b2"]

    def test_idempotent(self, make_directory, bank_line, card_line) -> None:
        """Test running twice on the same input gives the same assignment."""
        lines = [
            card_line("c1", "20/02/24", "500", card="1234", charge_date="05/03/24"),
            card_line("c2", "20/02/24", "500", card="9876", charge_date="05/03/24"),
            bank_line("b1", "06/03/24", "500"),
            bank_line("b2", "07/03/24", "500", description="CARD CO"),
            bank_line("b3", "07/03/24", "1000"),
        ]
        reconciler = ChargeReconciler(card_co_directory(make_directory))
        first = reconciler.reconcile(lines)
        second = reconciler.reconcile(lines)
        assert first.lines == second.lines
        assert first.cycles == second.cycles

    def test_no_card_lines(self, memory_directory, bank_line) -> None:
        """Test bank-only input is returned unchanged without touching patterns."""
        lines = [bank_line("b1", "06/03/24", "500")]
        result = ChargeReconciler(memory_directory).reconcile(lines)
        assert result.lines == lines
        assert result.cycles == []
        assert memory_directory.writes == []

    def test_missing_pattern_file_still_matches(self, memory_directory, bank_line, card_line) -> None:
        """Test amount-only matching after seeding an empty rules file."""
        lines = [
            card_line("c1", "20/02/24", "500", charge_date="05/03/24"),
            bank_line("b1", "06/03/24", "500", description="CARD CO PAYMENT"),
        ]
        result = ChargeReconciler(memory_directory).reconcile(lines)
        assert result.lines[1].match_reason == "amount"
        assert memory_directory.writes == [PATTERNS_FILENAME]

    def test_custom_options(self, bank_line, card_line) -> None:
        """Test options widen the window and tolerance."""
        lines = [
            card_line("c1", "20/02/24", "1000", charge_date="05/03/24"),
            bank_line("b1", "14/03/24", "1040"),
        ]
        assert ChargeReconciler().reconcile(lines).lines[1].neutral is False

        options = ReconcileOptions(days_after_charge=10, tolerance_ratio=Decimal("0.05"))
        assert ChargeReconciler(options=options).reconcile(lines).lines[1].neutral is True

    def test_rerun_reclassifies_previous_result(self, bank_line, card_line) -> None:
        """Test payoff flags from an earlier run do not survive new card data."""
        first = ChargeReconciler().reconcile(
            [
                card_line("c1", "20/02/24", "500", card="1234", charge_date="05/03/24"),
                bank_line("b1", "08/03/24", "500"),
            ]
        )
        paid = first.lines[1]
        assert paid.neutral is True

        second = ChargeReconciler().reconcile(
            [paid, card_line("c2", "20/02/24", "10", card="1234", charge_date="05/03/24")]
        )

        line = second.lines[0]
        assert line.neutral is False
        assert line.transaction_type == "regular"
        assert line.related_transaction_ids == ()
        assert line.matched_cycle_keys == ()
        assert line.match_reason is None
        assert second.payoff_lines == []

    def test_rerun_without_card_lines_clears_flags(self, bank_line, card_line) -> None:
        """Test stale flags are cleared even when matching is skipped."""
        first = ChargeReconciler().reconcile(
            [
                card_line("c1", "20/02/24", "500", card="1234", charge_date="05/03/24"),
                bank_line("b1", "08/03/24", "500"),
            ]
        )
        second = ChargeReconciler().reconcile([first.lines[1]])
        assert second.lines == [bank_line("b1", "08/03/24", "500")]

    def test_float_amounts(self) -> None:
        """Test float amounts reconcile like their Decimal equivalents."""
        lines = [
            TransactionLine(
                id="c1",
                source="card",
                date=date(2024, 2, 20),
                amount=500.0,
                direction="expense",
                charge_date=date(2024, 3, 5),
                card_last4="1234",
            ),
            TransactionLine(
                id="b1", source="bank", date=date(2024, 3, 8), amount=500.0, direction="expense"
            ),
        ]
        result = ChargeReconciler().reconcile(lines)
        assert result.lines[1].transaction_type == "credit_charge"
        assert result.cycles[0].net_charge == Decimal("500")
