"""
Net Worth Aggregator

Combines every account's resolved balance into a signed total and
evaluates that total across a trend window.

DESIGN DECISION: Each point of a series is a full recomputation from the
ledger - O(accounts x transactions x points). There is no prefix-sum
cache; at a few thousand transactions the simple version is fast enough
and is the reference behavior.
"""

from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from typing import Optional, Sequence

from zenledger.engine.balances import balance_as_of
from zenledger.models.ledger import Account, AccountKind, Transaction
from zenledger.models.periods import (
    MonthPeriod,
    TrendWindow,
    end_of_day,
    iter_days,
)
from zenledger.models.reports import TrendPoint, TrendSeries


# Windows spanning up to this many days get one point per day.
DAILY_GRANULARITY_MAX_DAYS = 90


def net_worth_contribution(account: Account, balance: Decimal) -> Decimal:
    """Liabilities subtract from net worth; assets and savings goals add."""
    if account.kind is AccountKind.LIABILITY:
        return -balance
    return balance


def net_worth_as_of(
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    cutoff: Optional[datetime] = None,
) -> Decimal:
    total = Decimal("0")
    for account in accounts:
        balance = balance_as_of(account, transactions, cutoff)
        total += net_worth_contribution(account, balance)
    return total


def trend_cutoffs(
    window: TrendWindow,
    daily_max_days: int = DAILY_GRANULARITY_MAX_DAYS,
) -> list[datetime]:
    """
    The instants a trend series is evaluated at.

    Short windows: the end of every day in the window.
    Long windows: the end of the last calendar day of each month,
    with the final month clamped to the window's end. An inverted
    window has no cutoffs.
    """
    if window.end < window.start:
        return []
    if window.span_days <= daily_max_days:
        return [end_of_day(day) for day in iter_days(window.start, window.end)]

    cutoffs = []
    month = MonthPeriod.of(window.start)
    last_month = MonthPeriod.of(window.end)
    while (month.year, month.month) <= (last_month.year, last_month.month):
        cutoffs.append(end_of_day(min(month.last_day, window.end)))
        month = month.next()
    return cutoffs


def summarize_trend(points: Sequence[TrendPoint]) -> TrendSeries:
    """Attach peak, trough and (floored) average to a list of points."""
    if not points:
        return TrendSeries()

    values = [point.value for point in points]
    mean = sum(values, Decimal("0")) / len(values)
    return TrendSeries(
        points=tuple(points),
        peak=max(values),
        trough=min(values),
        average=mean.to_integral_value(rounding=ROUND_FLOOR),
    )


def net_worth_series(
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    window: TrendWindow,
    daily_max_days: int = DAILY_GRANULARITY_MAX_DAYS,
) -> TrendSeries:
    points = [
        TrendPoint(
            timestamp=cutoff,
            value=net_worth_as_of(accounts, transactions, cutoff),
        )
        for cutoff in trend_cutoffs(window, daily_max_days)
    ]
    return summarize_trend(points)


def account_trend_series(
    account: Account,
    transactions: Sequence[Transaction],
    window: TrendWindow,
    daily_max_days: int = DAILY_GRANULARITY_MAX_DAYS,
) -> TrendSeries:
    """
    Trend of a single account's own balance.

    No liability sign flip: a credit card shows what is owed.
    """
    points = [
        TrendPoint(
            timestamp=cutoff,
            value=balance_as_of(account, transactions, cutoff),
        )
        for cutoff in trend_cutoffs(window, daily_max_days)
    ]
    return summarize_trend(points)
