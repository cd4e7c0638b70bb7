"""
Tests for the balance resolver.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from zenledger.engine import (
    account_balances,
    balance_as_of,
    calibration_transaction,
    current_balance,
    goal_progress,
    group_balances,
    signed_delta,
)
from zenledger.models import (
    Account,
    AccountKind,
    Transaction,
    TransactionType,
)


def tx(amount, tx_type, account_id="a1", when=datetime(2024, 3, 1, 12, 0), category="Food"):
    return Transaction(
        amount=Decimal(str(amount)),
        type=tx_type,
        account_id=account_id,
        category=category,
        date=when,
    )


@pytest.fixture
def cash():
    return Account(id="a1", name="Cash", initial_balance=Decimal("1000"))


@pytest.fixture
def card():
    return Account(
        id="cc",
        name="Credit card",
        kind=AccountKind.LIABILITY,
        initial_balance=Decimal("500"),
        debt_amount=Decimal("1000"),
    )


class TestSignedDelta:
    """Tests for polarity handling."""

    def test_asset_income_increases(self):
        """Test that income raises an asset."""
        assert signed_delta(AccountKind.ASSET, tx(10, "income")) == Decimal("10")

    def test_asset_expense_decreases(self):
        """Test that expense lowers an asset."""
        assert signed_delta(AccountKind.ASSET, tx(10, "expense")) == Decimal("-10")

    def test_liability_expense_increases_debt(self):
        """Test that spending on a liability increases what is owed."""
        assert signed_delta(AccountKind.LIABILITY, tx(10, "expense")) == Decimal("10")

    def test_liability_income_repays(self):
        """Test that income on a liability repays it."""
        assert signed_delta(AccountKind.LIABILITY, tx(10, "income")) == Decimal("-10")

    def test_savings_goal_behaves_like_asset(self):
        """Test savings goal polarity."""
        assert signed_delta(AccountKind.SAVINGS_GOAL, tx(10, "income")) == Decimal("10")


class TestBalanceAsOf:
    """Tests for point-in-time balances."""

    def test_no_transactions_returns_initial(self, cash):
        """Test opening balance with an empty ledger."""
        assert balance_as_of(cash, []) == Decimal("1000")

    def test_asset_balance(self, cash):
        """Test asset balance over mixed transactions."""
        ledger = [tx(200, "income"), tx("50.25", "expense")]
        assert current_balance(cash, ledger) == Decimal("1149.75")

    def test_liability_balance(self, card):
        """Test liability balance: expense +, income -."""
        ledger = [
            tx(300, "expense", account_id="cc"),
            tx(100, "income", account_id="cc"),
        ]
        assert current_balance(card, ledger) == Decimal("700")

    def test_cutoff_is_inclusive(self, cash):
        """Test that a transaction exactly at the cutoff counts."""
        at = datetime(2024, 3, 1, 12, 0)
        ledger = [tx(100, "expense", when=at), tx(1, "expense", when=datetime(2024, 3, 2))]
        assert balance_as_of(cash, ledger, at) == Decimal("900")

    def test_unlinked_never_contributes(self, cash):
        """Test that unlinked transactions are ignored."""
        ledger = [tx(999, "expense", account_id="unlinked")]
        assert current_balance(cash, ledger) == Decimal("1000")

    def test_other_accounts_ignored(self, cash):
        """Test that another account's transactions are ignored."""
        assert current_balance(cash, [tx(5, "expense", account_id="a2")]) == Decimal("1000")

    def test_negative_not_clamped(self, cash):
        """Test that an overdrawn asset goes negative."""
        assert current_balance(cash, [tx(1500, "expense")]) == Decimal("-500")

    def test_input_order_does_not_matter(self, cash):
        """Test that the sum is order independent."""
        ledger = [
            tx(10, "income", when=datetime(2024, 3, 3)),
            tx(20, "expense", when=datetime(2024, 3, 1)),
            tx(30, "income", when=datetime(2024, 3, 2)),
        ]
        assert current_balance(cash, ledger) == current_balance(cash, list(reversed(ledger)))

    def test_future_transaction_counts_without_cutoff(self, cash):
        """Test that a future-dated transaction counts in the current balance."""
        ledger = [tx(100, "income", when=datetime(2999, 1, 1))]
        assert current_balance(cash, ledger) == Decimal("1100")
        assert balance_as_of(cash, ledger, datetime(2024, 1, 1)) == Decimal("1000")

    def test_aware_cutoff_compared_in_utc(self, cash):
        """Test that an aware cutoff is resolved against UTC transaction dates."""
        ledger = [tx(5, "income", when="2024-01-05T10:00:00Z")]
        assert balance_as_of(cash, ledger, datetime(2024, 1, 6, tzinfo=timezone.utc)) == Decimal("1005")
        # 11:00 at UTC+2 is 09:00 UTC, an hour before the transaction
        before = datetime(2024, 1, 5, 11, 0, tzinfo=timezone(timedelta(hours=2)))
        assert balance_as_of(cash, ledger, before) == Decimal("1000")

    def test_repayment_lowers_liability_at_every_later_cutoff(self, card):
        """Test that a repayment strictly lowers the debt from its date on."""
        spending = [tx(300, "expense", account_id="cc", when=datetime(2024, 3, 1, 9, 0))]
        repaid_at = datetime(2024, 3, 5, 12, 0)
        with_repayment = spending + [tx(100, "income", account_id="cc", when=repaid_at)]

        cutoffs = [repaid_at] + [repaid_at + timedelta(days=n, hours=11) for n in range(10)]
        for cutoff in cutoffs:
            assert balance_as_of(card, with_repayment, cutoff) < balance_as_of(card, spending, cutoff)

        earlier = repaid_at - timedelta(microseconds=1)
        assert balance_as_of(card, with_repayment, earlier) == balance_as_of(card, spending, earlier)


class TestGoalProgress:
    """Tests for advisory progress toward targets."""

    def test_liability_progress(self, card):
        """Test repaid share of the debt."""
        assert goal_progress(card, Decimal("250")) == pytest.approx(75.0)

    def test_savings_progress_clamped(self):
        """Test that savings progress never exceeds 100."""
        fund = Account(name="Trip", kind=AccountKind.SAVINGS_GOAL,
                       savings_goal=Decimal("100"))
        assert goal_progress(fund, Decimal("250")) == 100.0
        assert goal_progress(fund, Decimal("-10")) == 0.0

    def test_no_target(self, cash):
        """Test that plain assets and targetless accounts have no progress."""
        assert goal_progress(cash, Decimal("10")) is None
        debt = Account(name="Loan", kind=AccountKind.LIABILITY)
        assert goal_progress(debt, Decimal("10")) is None


class TestAccountBalances:
    """Tests for multi-account resolution."""

    def test_keeps_order_and_attaches_progress(self, cash, card):
        """Test that results follow account order."""
        balances = account_balances([card, cash], [tx(100, "income", account_id="cc")])
        assert [b.account.id for b in balances] == ["cc", "a1"]
        assert balances[0].balance == Decimal("400")
        assert balances[0].progress_percent == pytest.approx(60.0)
        assert balances[1].progress_percent is None

    def test_group_by_account_type(self):
        """Test grouping by label in first-seen order."""
        accounts = [
            Account(id="1", name="Cash", account_type="Cash"),
            Account(id="2", name="Wallet", account_type="Payment app"),
            Account(id="3", name="Pocket", account_type="Cash"),
        ]
        groups = group_balances(account_balances(accounts, []))
        assert [g.account_type for g in groups] == ["Cash", "Payment app"]
        assert [b.account.id for b in groups[0].balances] == ["1", "3"]


class TestCalibration:
    """Tests for manual balance calibration."""

    def test_asset_increase_is_income(self, cash):
        """Test that raising an asset records income."""
        when = datetime(2024, 3, 10)
        adjustment = calibration_transaction(cash, [], Decimal("1200"), when)
        assert adjustment.type is TransactionType.INCOME
        assert adjustment.amount == Decimal("200")
        assert adjustment.id.startswith("adj-")
        assert adjustment.category == "Other"
        assert adjustment.date == when
        assert current_balance(cash, [adjustment]) == Decimal("1200")

    def test_liability_decrease_is_income(self, card):
        """Test that lowering a debt records income."""
        adjustment = calibration_transaction(card, [], Decimal("200"), datetime(2024, 3, 10))
        assert adjustment.type is TransactionType.INCOME
        assert current_balance(card, [adjustment]) == Decimal("200")

    def test_liability_increase_is_expense(self, card):
        """Test that raising a debt records an expense."""
        adjustment = calibration_transaction(card, [], Decimal("800"), datetime(2024, 3, 10))
        assert adjustment.type is TransactionType.EXPENSE
        assert current_balance(card, [adjustment]) == Decimal("800")

    def test_no_adjustment_when_equal(self, cash):
        """Test that nothing is produced when already at target."""
        assert calibration_transaction(cash, [], Decimal("1000"), datetime(2024, 3, 10)) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
