"""
Period Aggregator

Buckets ledger events by calendar day and by category inside an
arbitrary inclusive date range, for trend charts and composition
breakdowns.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Sequence, Union

from zenledger.models.ledger import Transaction, TransactionType
from zenledger.models.periods import (
    MonthPeriod,
    as_day,
    end_of_day,
    iter_days,
    start_of_day,
)
from zenledger.models.reports import (
    CategoryShare,
    DayBucket,
    MonthSummary,
    PeriodSummary,
)


ZERO = Decimal("0")


def percent_of(value: Decimal, total: Decimal) -> float:
    """Share of `total` in percent; zero when there is no total."""
    if total <= 0:
        return 0.0
    return float(value / total * 100)


def transactions_between(
    transactions: Iterable[Transaction],
    start: Union[date, datetime],
    end: Union[date, datetime],
) -> list[Transaction]:
    """Transactions from start 00:00:00 through end 23:59:59.999999."""
    lower, upper = start_of_day(start), end_of_day(end)
    return [t for t in transactions if lower <= t.date <= upper]


def period_summary(
    transactions: Sequence[Transaction],
    start: Union[date, datetime],
    end: Union[date, datetime],
) -> PeriodSummary:
    """
    Income/expense totals, expense composition and per-day buckets.

    Every day in the range gets a bucket, even when empty, so charts
    keep equal-width bars. An inverted range yields an empty summary.
    """
    start_day, end_day = as_day(start), as_day(end)
    if end_day < start_day:
        return PeriodSummary(start=start_day, end=end_day)

    days = {
        day: {"income": ZERO, "expense": ZERO, "by_category": {}}
        for day in iter_days(start_day, end_day)
    }
    income = ZERO
    expense = ZERO
    spend_by_category: dict[str, Decimal] = {}

    for transaction in transactions_between(transactions, start_day, end_day):
        bucket = days[transaction.date.date()]
        if transaction.type is TransactionType.INCOME:
            income += transaction.amount
            bucket["income"] += transaction.amount
            continue

        expense += transaction.amount
        bucket["expense"] += transaction.amount
        name = transaction.category
        spend_by_category[name] = spend_by_category.get(name, ZERO) + transaction.amount
        bucket["by_category"][name] = bucket["by_category"].get(name, ZERO) + transaction.amount

    shares = sorted(
        (
            CategoryShare(
                name=name,
                value=value,
                percent_of_total_expense=percent_of(value, expense),
            )
            for name, value in spend_by_category.items()
            if value > 0
        ),
        key=lambda share: (-share.value, share.name),
    )

    buckets = tuple(
        DayBucket(
            day=day,
            income=totals["income"],
            expense=totals["expense"],
            by_category=dict(sorted(totals["by_category"].items())),
        )
        for day, totals in days.items()
    )

    return PeriodSummary(
        start=start_day,
        end=end_day,
        income=income,
        expense=expense,
        by_category=tuple(shares),
        by_bucket=buckets,
    )


def month_transactions(
    transactions: Iterable[Transaction],
    period: MonthPeriod,
) -> list[Transaction]:
    return [t for t in transactions if period.contains(t.date)]


def month_summary(
    transactions: Iterable[Transaction],
    period: MonthPeriod,
) -> MonthSummary:
    """Dashboard totals for one calendar month."""
    income = ZERO
    expense = ZERO
    for transaction in month_transactions(transactions, period):
        if transaction.type is TransactionType.INCOME:
            income += transaction.amount
        else:
            expense += transaction.amount

    return MonthSummary(
        period=str(period),
        income=income,
        expense=expense,
        balance=income - expense,
    )
