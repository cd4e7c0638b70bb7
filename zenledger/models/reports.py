"""
Derived Report Models

Everything the engine returns. These are never stored - they are
recomputed from the ledger on every read.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from zenledger.models.ledger import Account, Money


REPORT_MODEL_CONFIG = ConfigDict(frozen=True)


# =============================================================================
# BALANCES AND TRENDS
# =============================================================================

class AccountBalance(BaseModel):
    """An account together with its resolved balance."""
    model_config = REPORT_MODEL_CONFIG

    account: Account
    balance: Money
    progress_percent: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=100.0,
        description="Advisory progress toward a debt or savings target"
    )


class AccountGroup(BaseModel):
    """Accounts sharing an `account_type` label."""
    model_config = REPORT_MODEL_CONFIG

    account_type: str
    balances: tuple[AccountBalance, ...]


class TrendPoint(BaseModel):
    model_config = REPORT_MODEL_CONFIG

    timestamp: datetime
    value: Money


class TrendSeries(BaseModel):
    """
    A value evaluated at a sequence of cutoffs.

    `average` is the floor of the arithmetic mean. All three
    statistics are zero for an empty series.
    """
    model_config = REPORT_MODEL_CONFIG

    points: tuple[TrendPoint, ...] = ()
    peak: Money = Decimal("0")
    trough: Money = Decimal("0")
    average: Money = Decimal("0")


# =============================================================================
# PERIOD AGGREGATES
# =============================================================================

class CategoryShare(BaseModel):
    """One slice of the expense composition."""
    model_config = REPORT_MODEL_CONFIG

    name: str
    value: Money
    percent_of_total_expense: float = Field(ge=0.0, le=100.0)


class DayBucket(BaseModel):
    """Totals for a single calendar day, with a per-category expense split."""
    model_config = REPORT_MODEL_CONFIG

    day: date
    income: Money = Decimal("0")
    expense: Money = Decimal("0")
    by_category: dict[str, Money] = Field(default_factory=dict)


class PeriodSummary(BaseModel):
    model_config = REPORT_MODEL_CONFIG

    start: date
    end: date
    income: Money = Decimal("0")
    expense: Money = Decimal("0")
    by_category: tuple[CategoryShare, ...] = ()
    by_bucket: tuple[DayBucket, ...] = ()

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class MonthSummary(BaseModel):
    """Income, expense and what is left over for one calendar month."""
    model_config = REPORT_MODEL_CONFIG

    period: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    income: Money = Decimal("0")
    expense: Money = Decimal("0")
    balance: Money = Decimal("0")


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetStatus(BaseModel):
    """Budget-vs-actual for one category in the current month."""
    model_config = REPORT_MODEL_CONFIG

    category: str
    monthly_limit: Money
    adjustment: Money = Decimal("0")
    effective_limit: Money
    spent: Money = Decimal("0")
    remaining: Money
    percent_used: float = Field(ge=0.0, le=100.0)

    @property
    def is_over(self) -> bool:
        return self.remaining < 0


# =============================================================================
# DASHBOARD
# =============================================================================

class Dashboard(BaseModel):
    """Everything the main screen shows, computed in one pass over a snapshot."""
    model_config = REPORT_MODEL_CONFIG

    month: MonthSummary
    net_worth: Money
    accounts: tuple[AccountBalance, ...] = ()
    account_groups: tuple[AccountGroup, ...] = ()
    budgets: tuple[BudgetStatus, ...] = ()
    expense_composition: tuple[CategoryShare, ...] = ()
    net_worth_trend: TrendSeries = Field(default_factory=TrendSeries)
