"""Unit tests for excess/deficit reconciliation policy."""

from decimal import Decimal

from rentledger.services.balance_ledger import compute_balance_change


class TestComputeBalanceChange:
    """Signed balance adjustment for overpayment and underpayment."""

    def test_overpayment_credited(self):
        assert compute_balance_change(Decimal("500.00"), Decimal("0.00")) == Decimal("500.00")

    def test_exact_payment_no_change(self):
        assert compute_balance_change(Decimal("0.00"), Decimal("1000.00")) == Decimal("0.00")

    def test_shortfall_fully_absorbed_by_credit(self):
        assert compute_balance_change(Decimal("-300.00"), Decimal("1000.00")) == Decimal("-300.00")

    def test_shortfall_equal_to_credit(self):
        assert compute_balance_change(Decimal("-300.00"), Decimal("300.00")) == Decimal("-300.00")

    def test_shortfall_partially_absorbed(self):
        """Remaining shortfall beyond stored credit is accepted."""
        assert compute_balance_change(Decimal("-800.00"), Decimal("200.00")) == Decimal("-200.00")

    def test_shortfall_without_credit(self):
        assert compute_balance_change(Decimal("-800.00"), Decimal("0.00")) == Decimal("0.00")
