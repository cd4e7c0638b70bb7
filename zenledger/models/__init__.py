"""
Data Models Package

This package contains all Pydantic models used in ZenLedger.
Ledger records are validated on construction; report models are
what the engine hands back.
"""

from zenledger.models.ledger import (
    UNLINKED_ACCOUNT_ID,
    Account,
    AccountKind,
    Budget,
    BudgetPeriod,
    Category,
    LedgerPreferences,
    LedgerSnapshot,
    Money,
    RolloverRules,
    Transaction,
    TransactionType,
    derive_budget_limits,
    new_id,
)
from zenledger.models.periods import (
    MonthPeriod,
    TrendPreset,
    TrendWindow,
    as_day,
    end_of_day,
    start_of_day,
    to_naive_utc,
)
from zenledger.models.reports import (
    AccountBalance,
    AccountGroup,
    BudgetStatus,
    CategoryShare,
    Dashboard,
    DayBucket,
    MonthSummary,
    PeriodSummary,
    TrendPoint,
    TrendSeries,
)
from zenledger.models.validation import ValidationIssue, ValidationResult
from zenledger.models.defaults import (
    DEFAULT_ACCOUNT_TYPES,
    DEFAULT_ACCOUNTS,
    DEFAULT_BUDGETS,
    DEFAULT_CATEGORIES,
    default_snapshot,
)
from zenledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "UNLINKED_ACCOUNT_ID",
    "Account",
    "AccountKind",
    "Budget",
    "BudgetPeriod",
    "Category",
    "LedgerPreferences",
    "LedgerSnapshot",
    "Money",
    "RolloverRules",
    "Transaction",
    "TransactionType",
    "derive_budget_limits",
    "new_id",
    # Periods
    "MonthPeriod",
    "TrendPreset",
    "TrendWindow",
    "as_day",
    "end_of_day",
    "start_of_day",
    "to_naive_utc",
    # Report models
    "AccountBalance",
    "AccountGroup",
    "BudgetStatus",
    "CategoryShare",
    "Dashboard",
    "DayBucket",
    "MonthSummary",
    "PeriodSummary",
    "TrendPoint",
    "TrendSeries",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Starter ledger
    "DEFAULT_ACCOUNT_TYPES",
    "DEFAULT_ACCOUNTS",
    "DEFAULT_BUDGETS",
    "DEFAULT_CATEGORIES",
    "default_snapshot",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
