"""
Tests for ZenLedger models

Test strategy:
1. Unit tests for individual components (models, engine, validators)
2. Integration tests for the session (with in-memory storage)
3. No real API calls in tests (use fakes)
"""

import json
import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from zenledger.models import (
    UNLINKED_ACCOUNT_ID,
    Account,
    AccountKind,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Budget,
    BudgetPeriod,
    Category,
    LedgerPreferences,
    LedgerSnapshot,
    MonthPeriod,
    Transaction,
    TransactionType,
    TrendWindow,
    ValidationIssue,
    ValidationResult,
    default_snapshot,
    derive_budget_limits,
    to_naive_utc,
)


class TestAccountModel:
    """Tests for the Account model."""

    def test_account_defaults_to_asset(self):
        """Test that a plain account is an asset."""
        account = Account(name="Cash")
        assert account.kind is AccountKind.ASSET
        assert account.initial_balance == Decimal("0")
        assert not account.is_liability

    def test_account_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        account = Account(name="  Wallet  ")
        assert account.name == "Wallet"

    def test_account_rejects_empty_name(self):
        """Test that an empty name is rejected."""
        with pytest.raises(ValidationError):
            Account(name="")

    def test_legacy_liability_flag(self):
        """Test that isLiability maps to the liability kind."""
        account = Account.model_validate({
            "id": "cc",
            "name": "Credit card",
            "type": "Credit card / Debt",
            "initialBalance": 500,
            "isLiability": True,
        })
        assert account.kind is AccountKind.LIABILITY
        assert account.account_type == "Credit card / Debt"
        assert account.initial_balance == Decimal("500")

    def test_legacy_savings_flag(self):
        """Test that isSavings maps to the savings goal kind."""
        account = Account.model_validate({"name": "Trip fund", "isSavings": True})
        assert account.kind is AccountKind.SAVINGS_GOAL

    def test_both_legacy_flags_rejected(self):
        """Test that an account cannot be both liability and savings goal."""
        with pytest.raises(ValidationError):
            Account.model_validate({
                "name": "Confused",
                "isLiability": True,
                "isSavings": True,
            })

    def test_account_is_immutable(self):
        """Test that accounts cannot be mutated in place."""
        account = Account(name="Cash")
        with pytest.raises(ValidationError):
            account.name = "Other"

    def test_account_serializes_camel_case(self):
        """Test that JSON output uses the bundle's field names."""
        account = Account(id="a1", name="Bank", account_type="Bank savings",
                          initial_balance=Decimal("12.50"))
        data = account.model_dump(mode="json", by_alias=True)
        assert data["accountType"] == "Bank savings"
        assert data["initialBalance"] == 12.5
        assert "initial_balance" not in data


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(
            amount=Decimal("42.10"),
            type=TransactionType.EXPENSE,
            account_id="a1",
            category="Food",
            date=datetime(2024, 3, 5, 12, 30),
        )
        assert tx.amount == Decimal("42.10")
        assert tx.id
        assert not tx.is_unlinked

    def test_transaction_defaults_to_unlinked(self):
        """Test that a transaction without account is unlinked."""
        tx = Transaction(amount=1, type="income", date="2024-01-01")
        assert tx.account_id == UNLINKED_ACCOUNT_ID
        assert tx.is_unlinked

    def test_rejects_zero_amount(self):
        """Test that zero amounts are rejected."""
        with pytest.raises(ValidationError):
            Transaction(amount=0, type="expense", date="2024-01-01")

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            Transaction(amount=Decimal("-5"), type="expense", date="2024-01-01")

    def test_rejects_non_numeric_amount(self):
        """Test that a non-numeric amount is an error, not zero."""
        with pytest.raises(ValidationError):
            Transaction(amount="abc", type="expense", date="2024-01-01")

    def test_rejects_boolean_amount(self):
        """Test that booleans are not accepted as amounts."""
        with pytest.raises(ValidationError):
            Transaction(amount=True, type="expense", date="2024-01-01")

    def test_rejects_unknown_type(self):
        """Test that only expense and income are valid types."""
        with pytest.raises(ValidationError):
            Transaction(amount=1, type="transfer", date="2024-01-01")

    def test_date_only_means_midnight(self):
        """Test that a bare date is read as midnight."""
        tx = Transaction(amount=1, type="expense", date="2024-02-29")
        assert tx.date == datetime(2024, 2, 29, 0, 0)

    def test_aware_date_normalized_to_utc(self):
        """Test that aware timestamps become naive UTC."""
        tx = Transaction(
            amount=1,
            type="expense",
            date=datetime(2024, 1, 1, 8, 0, tzinfo=timezone(timedelta(hours=8))),
        )
        assert tx.date == datetime(2024, 1, 1, 0, 0)
        assert tx.date.tzinfo is None

    def test_reads_camel_case_bundle_record(self):
        """Test that bundle records with accountId are accepted."""
        tx = Transaction.model_validate({
            "id": "t1",
            "amount": 30,
            "type": "expense",
            "accountId": "a1",
            "category": "Food",
            "date": "2024-03-01T10:00:00.000Z",
            "note": "lunch",
        })
        assert tx.account_id == "a1"
        assert tx.date == datetime(2024, 3, 1, 10, 0)


class TestBudgetModel:
    """Tests for budget limits and their derivation."""

    def test_derive_from_monthly(self):
        """Test monthly edit derives daily and yearly."""
        limits = derive_budget_limits(BudgetPeriod.MONTHLY, Decimal("2000"))
        assert limits == {
            "daily_limit": Decimal("66"),
            "monthly_limit": Decimal("2000"),
            "yearly_limit": Decimal("24000"),
        }

    def test_derive_from_daily(self):
        """Test daily edit derives monthly and yearly."""
        limits = derive_budget_limits(BudgetPeriod.DAILY, Decimal("10"))
        assert limits["monthly_limit"] == Decimal("300")
        assert limits["yearly_limit"] == Decimal("3650")

    def test_derive_from_yearly(self):
        """Test yearly edit derives monthly and daily, rounded down."""
        limits = derive_budget_limits(BudgetPeriod.YEARLY, Decimal("1000"))
        assert limits["monthly_limit"] == Decimal("83")
        assert limits["daily_limit"] == Decimal("2")

    def test_derive_rejects_negative(self):
        """Test that negative limits are rejected."""
        with pytest.raises(ValueError):
            derive_budget_limits(BudgetPeriod.MONTHLY, Decimal("-1"))

    def test_legacy_limit_field(self):
        """Test that older bundles storing `limit` are read."""
        budget = Budget.model_validate({"category": "Food", "limit": 600})
        assert budget.monthly_limit == Decimal("600")
        assert budget.daily_limit == Decimal("20")
        assert budget.yearly_limit == Decimal("7200")

    def test_stored_views_are_kept(self):
        """Test that explicit daily/yearly limits are not overwritten."""
        budget = Budget.model_validate({
            "category": "Food",
            "limit": 2000,
            "dailyLimit": 70,
            "yearlyLimit": 20000,
        })
        assert budget.daily_limit == Decimal("70")
        assert budget.yearly_limit == Decimal("20000")

    def test_for_period(self):
        """Test building a budget from one edited period."""
        budget = Budget.for_period("Transport", BudgetPeriod.DAILY, Decimal("5"))
        assert budget.monthly_limit == Decimal("150")


class TestSnapshot:
    """Tests for the ledger snapshot and preferences."""

    def test_empty_snapshot(self):
        """Test that an empty snapshot has empty sections."""
        snapshot = LedgerSnapshot()
        assert snapshot.transactions == ()
        assert snapshot.preferences.enable_account_linking is True

    def test_lookups(self):
        """Test id and name lookups."""
        snapshot = LedgerSnapshot(
            accounts=(Account(id="a1", name="Cash"),),
            categories=(Category(id="c1", name="Food"),),
            budgets=(Budget(category="Food", monthly_limit=100),),
        )
        assert snapshot.account_by_id("a1").name == "Cash"
        assert snapshot.account_by_id("missing") is None
        assert snapshot.category_by_name("Food").id == "c1"
        assert snapshot.budget_for("Food").monthly_limit == Decimal("100")
        assert snapshot.budget_for("Travel") is None

    def test_preferences_rollover_rules(self):
        """Test that preferences map to rollover rules."""
        preferences = LedgerPreferences.model_validate({
            "enableBudgetAccumulation": True,
            "enableExcessDeduction": False,
        })
        rules = preferences.rollover_rules
        assert rules.accumulate_surplus is True
        assert rules.deduct_excess is False
        assert rules.enabled

    def test_default_snapshot(self):
        """Test the starter ledger."""
        snapshot = default_snapshot()
        assert len(snapshot.categories) == 11
        assert snapshot.category_by_name("Other") is not None
        assert snapshot.budget_for("Food").daily_limit == Decimal("66")
        assert snapshot.transactions == ()
        for account in snapshot.accounts:
            assert account.account_type in snapshot.account_types


class TestPeriods:
    """Tests for month periods and trend windows."""

    def test_month_parse_and_str(self):
        """Test YYYY-MM parsing."""
        period = MonthPeriod.parse("2024-03")
        assert period.year == 2024 and period.month == 3
        assert str(period) == "2024-03"

    def test_month_parse_rejects_garbage(self):
        """Test that malformed months are rejected."""
        with pytest.raises(ValueError):
            MonthPeriod.parse("March")

    def test_previous_crosses_year(self):
        """Test that January's previous month is last December."""
        assert MonthPeriod(year=2024, month=1).previous() == MonthPeriod(year=2023, month=12)

    def test_last_day_leap_year(self):
        """Test month end in a leap year."""
        assert MonthPeriod(year=2024, month=2).last_day == date(2024, 2, 29)

    def test_contains(self):
        """Test month membership."""
        period = MonthPeriod(year=2024, month=3)
        assert period.contains(datetime(2024, 3, 31, 23, 59))
        assert not period.contains(date(2024, 4, 1))

    def test_trend_window_allows_inverted(self):
        """Test that end before start is accepted as an empty window."""
        window = TrendWindow(start=date(2024, 2, 1), end=date(2024, 1, 1))
        assert window.span_days < 0

    def test_aware_transaction_date_stored_as_utc(self):
        """Test that an aware date shares the helper used for cutoffs."""
        moment = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=5)))
        transaction = Transaction(amount=1, type="expense", date=moment)
        assert transaction.date == to_naive_utc(moment) == datetime(2023, 12, 31, 21, 0)

    def test_presets(self):
        """Test the three preset windows."""
        today = date(2024, 3, 15)
        assert TrendWindow.preset("30d", today).start == date(2024, 2, 14)
        assert TrendWindow.preset("90d", today).span_days == 90
        assert TrendWindow.preset("1y", today).start == date(2023, 3, 15)

    def test_year_preset_clamps_leap_day(self):
        """Test that Feb 29 maps to Feb 28 a year earlier."""
        window = TrendWindow.preset("1y", date(2024, 2, 29))
        assert window.start == date(2023, 2, 28)


class TestValidationModels:
    """Tests for validation result models."""

    def test_validation_issue_creation(self):
        """Test ValidationIssue model."""
        issue = ValidationIssue(
            field="amount",
            issue_type="missing",
            message="Amount is required",
            severity="error",
        )
        assert issue.severity == "error"

    def test_validation_issue_invalid_severity(self):
        """Test that invalid severity is rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(
                field="amount",
                issue_type="missing",
                message="x",
                severity="fatal",
            )

    def test_validation_result_counts(self):
        """Test error and warning helpers."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(field="date", issue_type="future_date",
                                message="future", severity="warning"),
            ],
        )
        assert not result.has_errors
        assert result.error_count == 0
        assert len(result.warnings) == 1


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.LEDGER_CHANGED,
            entity_type="transaction",
            entity_id="t1",
            description="Transaction added",
        )
        assert event.event_type == AuditEventType.LEDGER_CHANGED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            description="Saved",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "snapshot_saved"
        assert "event_id" in log_dict
        assert "timestamp" in log_dict

    def test_json_line_round_trips(self):
        """Test that a JSON line reads back as the same event."""
        correlation_id = uuid4()
        event = AuditEventBuilder.ledger_changed(
            command="add_transaction",
            entity_type="transaction",
            entity_id="t1",
            sections=["transactions"],
            correlation_id=correlation_id,
        )
        restored = AuditEvent.model_validate(json.loads(event.to_json_line()))
        assert restored.event_id == event.event_id
        assert restored.correlation_id == correlation_id
        assert restored.details == event.details

    def test_builder_save_failed(self):
        """Test builder for save failures."""
        event = AuditEventBuilder.save_failed(
            location="/tmp/ledger.json",
            error_message="disk full",
        )
        assert event.event_type == AuditEventType.SAVE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"

    def test_builder_bundle_imported_warns_on_drops(self):
        """Test that an import with dropped records is a warning."""
        event = AuditEventBuilder.bundle_imported(
            counts={"transactions": 3},
            dropped=1,
        )
        assert event.severity == AuditSeverity.WARNING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
