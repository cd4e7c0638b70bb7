"""
Ledger engine package.

Pure, synchronous functions over immutable ledger snapshots.
Nothing here performs I/O, logs, or keeps state between calls.
"""

from zenledger.engine.balances import (
    account_balances,
    balance_as_of,
    calibration_transaction,
    current_balance,
    goal_progress,
    group_balances,
    signed_delta,
)
from zenledger.engine.budgets import (
    as_month_period,
    budget_status,
    effective_limit,
    rollover_adjustment,
    set_budget_limit,
    spent_in_month,
)
from zenledger.engine.networth import (
    DAILY_GRANULARITY_MAX_DAYS,
    account_trend_series,
    net_worth_as_of,
    net_worth_series,
    trend_cutoffs,
)
from zenledger.engine.periods import (
    month_summary,
    month_transactions,
    period_summary,
    transactions_between,
)

__all__ = [
    # Balance resolver
    "account_balances",
    "balance_as_of",
    "calibration_transaction",
    "current_balance",
    "goal_progress",
    "group_balances",
    "signed_delta",
    # Budget rollover
    "as_month_period",
    "budget_status",
    "effective_limit",
    "rollover_adjustment",
    "set_budget_limit",
    "spent_in_month",
    # Net worth
    "DAILY_GRANULARITY_MAX_DAYS",
    "account_trend_series",
    "net_worth_as_of",
    "net_worth_series",
    "trend_cutoffs",
    # Period aggregates
    "month_summary",
    "month_transactions",
    "period_summary",
    "transactions_between",
]
