"""
Budget Rollover Calculator

Carries last month's under- or over-spend into this month's limit.

DESIGN DECISION: Only the immediately preceding month is inspected.
A surplus from two months ago is not chained forward once the next
month has been evaluated. The effective limit never drops below zero,
however large the deduction.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Sequence, Union

from zenledger.engine.periods import month_transactions, percent_of
from zenledger.models.ledger import (
    Budget,
    BudgetPeriod,
    RolloverRules,
    Transaction,
    TransactionType,
    derive_budget_limits,
)
from zenledger.models.periods import MonthPeriod
from zenledger.models.reports import BudgetStatus


ZERO = Decimal("0")

PeriodLike = Union[MonthPeriod, date, datetime, str]


def as_month_period(value: PeriodLike) -> MonthPeriod:
    """Accept a MonthPeriod, any date inside the month, or 'YYYY-MM'."""
    if isinstance(value, MonthPeriod):
        return value
    if isinstance(value, str):
        return MonthPeriod.parse(value)
    return MonthPeriod.of(value)


def spent_in_month(
    transactions: Iterable[Transaction],
    category: str,
    period: MonthPeriod,
) -> Decimal:
    """Sum of the category's expense transactions within the month."""
    return sum(
        (
            t.amount for t in month_transactions(transactions, period)
            if t.type is TransactionType.EXPENSE and t.category == category
        ),
        ZERO,
    )


def rollover_for(
    budget: Budget,
    prior_spent: Decimal,
    rules: RolloverRules,
) -> Decimal:
    """
    Adjustment for one budget given last month's spend.

    Surplus is added when `accumulate_surplus` is on; overspend is
    deducted when `deduct_excess` is on. Otherwise nothing carries.
    """
    prior_balance = budget.monthly_limit - prior_spent
    if prior_balance > 0 and rules.accumulate_surplus:
        return prior_balance
    if prior_balance < 0 and rules.deduct_excess:
        return prior_balance
    return ZERO


def rollover_adjustment(
    budgets: Sequence[Budget],
    transactions: Sequence[Transaction],
    current_period: PeriodLike,
    rules: RolloverRules,
) -> dict[str, Decimal]:
    """Map each budgeted category to its carry-forward adjustment."""
    prior = as_month_period(current_period).previous()
    return {
        budget.category: rollover_for(
            budget,
            spent_in_month(transactions, budget.category, prior),
            rules,
        )
        for budget in budgets
    }


def effective_limit(budget: Budget, adjustment: Decimal) -> Decimal:
    return max(ZERO, budget.monthly_limit + adjustment)


def budget_status(
    budgets: Sequence[Budget],
    transactions: Sequence[Transaction],
    current_period: PeriodLike,
    rules: RolloverRules,
) -> list[BudgetStatus]:
    """
    Budget-vs-actual for the current month.

    `percent_used` is capped at 100. With a zero effective limit it is
    100 as soon as anything is spent.
    """
    period = as_month_period(current_period)
    adjustments = rollover_adjustment(budgets, transactions, period, rules)

    statuses = []
    for budget in budgets:
        adjustment = adjustments.get(budget.category, ZERO)
        limit = effective_limit(budget, adjustment)
        spent = spent_in_month(transactions, budget.category, period)

        if limit > 0:
            percent = min(percent_of(spent, limit), 100.0)
        else:
            percent = 100.0 if spent > 0 else 0.0

        statuses.append(BudgetStatus(
            category=budget.category,
            monthly_limit=budget.monthly_limit,
            adjustment=adjustment,
            effective_limit=limit,
            spent=spent,
            remaining=limit - spent,
            percent_used=percent,
        ))
    return statuses


def set_budget_limit(
    budgets: Sequence[Budget],
    category: str,
    period: BudgetPeriod,
    value: Decimal,
) -> tuple[Budget, ...]:
    """
    Set one of a category's limits, re-deriving the other two.

    Creates the budget if the category has none yet.
    """
    limits = derive_budget_limits(period, value)
    updated = []
    found = False
    for budget in budgets:
        if budget.category == category:
            updated.append(budget.model_copy(update=limits))
            found = True
        else:
            updated.append(budget)

    if not found:
        updated.append(Budget(category=category, **limits))
    return tuple(updated)
