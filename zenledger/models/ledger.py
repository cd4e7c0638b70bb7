"""
Core Ledger Models for ZenLedger

These models define the strict schemas for everything the engine reads.
They are designed to:
1. Reject malformed input at construction time (the ingestion boundary)
2. Be immutable once created - edits produce new objects
3. Round-trip through the camelCase JSON bundle the app stores

DESIGN DECISION: Account polarity is a closed enum rather than a pair of
booleans. A liability can never also be a savings goal, so the two legacy
flags are folded into a single `kind` when a bundle is read.
"""

from datetime import date, datetime, time
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional, Union
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from zenledger.models.periods import to_naive_utc


# Sentinel account id for transactions recorded without account linking.
UNLINKED_ACCOUNT_ID = "unlinked"


def new_id() -> str:
    """Create a new opaque identifier."""
    return uuid4().hex


def _money_to_json(value: Decimal) -> Union[int, float]:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Decimal in memory, plain JSON number in the stored bundle.
Money = Annotated[
    Decimal,
    PlainSerializer(_money_to_json, return_type=Union[int, float], when_used="json"),
]


LEDGER_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    str_strip_whitespace=True,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountKind(str, Enum):
    """
    Account polarity.

    Decides whether income or expense increases the account's balance,
    and whether the balance adds to or subtracts from net worth.
    """
    ASSET = "asset"
    LIABILITY = "liability"
    SAVINGS_GOAL = "savings_goal"


class TransactionType(str, Enum):
    """Direction of a money movement. The amount itself is always positive."""
    EXPENSE = "expense"
    INCOME = "income"


class BudgetPeriod(str, Enum):
    """Which of a budget's three limits was edited."""
    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Account(BaseModel):
    """
    A place money sits (or is owed).

    `debt_amount`/`repayment_months` and `savings_goal`/`savings_months`
    are advisory targets for progress bars. They never feed balance math.
    """
    model_config = LEDGER_MODEL_CONFIG

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Stable opaque identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    kind: AccountKind = Field(
        default=AccountKind.ASSET,
        description="Polarity of the account"
    )
    account_type: str = Field(
        default="",
        max_length=50,
        validation_alias=AliasChoices("accountType", "type", "account_type"),
        serialization_alias="accountType",
        description="Free-text grouping label, e.g. 'Cash' or 'Bank savings'"
    )
    initial_balance: Money = Field(
        default=Decimal("0"),
        description="Balance before any recorded events"
    )
    color: str = Field(default="", max_length=20)
    note: str = Field(default="", max_length=500)

    debt_amount: Optional[Money] = Field(default=None, ge=0)
    repayment_months: Optional[int] = Field(default=None, ge=1)
    savings_goal: Optional[Money] = Field(default=None, ge=0)
    savings_months: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_flags(cls, data: Any) -> Any:
        """Map the old isLiability/isSavings booleans onto `kind`."""
        if not isinstance(data, dict) or "kind" in data:
            return data

        is_liability = bool(data.get("isLiability") or data.get("is_liability"))
        is_savings = bool(data.get("isSavings") or data.get("is_savings"))

        if is_liability and is_savings:
            raise ValueError(
                "An account cannot be both a liability and a savings goal"
            )
        if is_liability:
            return {**data, "kind": AccountKind.LIABILITY}
        if is_savings:
            return {**data, "kind": AccountKind.SAVINGS_GOAL}
        return data

    @property
    def is_liability(self) -> bool:
        return self.kind is AccountKind.LIABILITY


class Transaction(BaseModel):
    """
    A single income or expense event.

    Immutable: a transaction is only ever deleted or replaced whole.
    The sign lives in `type`, never in `amount`.
    """
    model_config = LEDGER_MODEL_CONFIG

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Stable opaque identifier"
    )
    amount: Money = Field(
        ...,
        gt=0,
        description="Positive amount; direction is carried by `type`"
    )
    type: TransactionType = Field(
        ...,
        description="expense or income"
    )
    account_id: str = Field(
        default=UNLINKED_ACCOUNT_ID,
        min_length=1,
        description="Account affected, or 'unlinked'"
    )
    category: str = Field(
        default="",
        max_length=100,
        description="Category name (not foreign-key enforced)"
    )
    date: datetime = Field(
        ...,
        description="When the event happened"
    )
    note: str = Field(default="", max_length=500)

    @field_validator("amount", mode="before")
    @classmethod
    def reject_non_numeric_amount(cls, v: Any) -> Any:
        """Booleans and blank strings are not amounts."""
        if isinstance(v, bool):
            raise ValueError("Amount must be a number, not a boolean")
        if isinstance(v, str) and not v.strip():
            raise ValueError("Amount must not be blank")
        return v

    @field_validator("date", mode="before")
    @classmethod
    def accept_calendar_dates(cls, v: Any) -> Any:
        """A bare date (or 'YYYY-MM-DD') means midnight of that day."""
        if isinstance(v, datetime):
            return v
        if isinstance(v, date):
            return datetime.combine(v, time.min)
        if isinstance(v, str) and len(v.strip()) == 10:
            try:
                return datetime.combine(date.fromisoformat(v.strip()), time.min)
            except ValueError:
                return v
        return v

    @field_validator("date")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        """Aware timestamps are stored as naive UTC so comparisons never mix."""
        return to_naive_utc(v)

    @property
    def is_unlinked(self) -> bool:
        return self.account_id == UNLINKED_ACCOUNT_ID


class Category(BaseModel):
    """A spending/income category. `name` is the aggregation key."""
    model_config = LEDGER_MODEL_CONFIG

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(default="MoreHorizontal", max_length=50)
    color: str = Field(default="#9ca3af", max_length=20)


def derive_budget_limits(period: BudgetPeriod, value: Decimal) -> dict[str, Decimal]:
    """
    Derive all three budget limits from the one that was edited.

    The three limits are views of a single monthly rate:
    - daily d   -> monthly d*30,    yearly d*365
    - monthly m -> daily m/30,      yearly m*12
    - yearly y  -> monthly y/12,    daily y/365

    Divisions are rounded toward zero.
    """
    value = Decimal(value)
    if value < 0:
        raise ValueError("Budget limits cannot be negative")

    if period is BudgetPeriod.DAILY:
        return {
            "daily_limit": value,
            "monthly_limit": value * 30,
            "yearly_limit": value * 365,
        }
    if period is BudgetPeriod.MONTHLY:
        return {
            "daily_limit": _round_toward_zero(value / 30),
            "monthly_limit": value,
            "yearly_limit": value * 12,
        }
    return {
        "daily_limit": _round_toward_zero(value / 365),
        "monthly_limit": _round_toward_zero(value / 12),
        "yearly_limit": value,
    }


def _round_toward_zero(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_DOWN)


class Budget(BaseModel):
    """
    Spending limit for one category.

    Only `monthly_limit` feeds the rollover calculator. Older bundles
    store it as `limit` and may omit the daily/yearly views, which are
    then derived from it.
    """
    model_config = LEDGER_MODEL_CONFIG

    category: str = Field(..., min_length=1, max_length=100)
    monthly_limit: Money = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("monthlyLimit", "limit", "monthly_limit"),
        serialization_alias="monthlyLimit",
    )
    daily_limit: Money = Field(default=Decimal("0"), ge=0)
    yearly_limit: Money = Field(default=Decimal("0"), ge=0)

    @model_validator(mode="before")
    @classmethod
    def fill_missing_views(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        monthly = _first_present(data, "monthlyLimit", "limit", "monthly_limit")
        if monthly is None or isinstance(monthly, bool):
            return data
        try:
            derived = derive_budget_limits(BudgetPeriod.MONTHLY, Decimal(str(monthly)))
        except (InvalidOperation, ValueError):
            # Let field validation report the bad value.
            return data

        filled = dict(data)
        if _first_present(data, "dailyLimit", "daily_limit") is None:
            filled["daily_limit"] = derived["daily_limit"]
        if _first_present(data, "yearlyLimit", "yearly_limit") is None:
            filled["yearly_limit"] = derived["yearly_limit"]
        return filled

    @classmethod
    def for_period(
        cls,
        category: str,
        period: BudgetPeriod,
        value: Decimal,
    ) -> "Budget":
        """Build a budget whose three limits agree with the edited one."""
        return cls(category=category, **derive_budget_limits(period, value))


def _first_present(data: dict, *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


# =============================================================================
# PREFERENCES AND SNAPSHOT
# =============================================================================

class RolloverRules(BaseModel):
    """Two independent toggles for carrying last month's budget result forward."""
    model_config = ConfigDict(frozen=True)

    accumulate_surplus: bool = False
    deduct_excess: bool = False

    @property
    def enabled(self) -> bool:
        return self.accumulate_surplus or self.deduct_excess


class LedgerPreferences(BaseModel):
    """User toggles stored alongside the ledger."""
    model_config = LEDGER_MODEL_CONFIG

    enable_account_linking: bool = True
    enable_budget_accumulation: bool = False
    enable_excess_deduction: bool = False

    @property
    def rollover_rules(self) -> RolloverRules:
        return RolloverRules(
            accumulate_surplus=self.enable_budget_accumulation,
            deduct_excess=self.enable_excess_deduction,
        )


class LedgerSnapshot(BaseModel):
    """
    The full ledger state handed to the engine.

    Every engine call receives a snapshot (or parts of it) and never
    keeps a reference to it after returning.
    """
    model_config = LEDGER_MODEL_CONFIG

    accounts: tuple[Account, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    budgets: tuple[Budget, ...] = ()
    categories: tuple[Category, ...] = ()
    account_types: tuple[str, ...] = ()
    preferences: LedgerPreferences = Field(default_factory=LedgerPreferences)

    def account_by_id(self, account_id: str) -> Optional[Account]:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def category_by_name(self, name: str) -> Optional[Category]:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def budget_for(self, category: str) -> Optional[Budget]:
        for budget in self.budgets:
            if budget.category == category:
                return budget
        return None
