"""
Balance Resolver

Computes an account's balance as of any cutoff instant from its opening
balance and the ledger events that reference it.

DESIGN DECISION: The balance is a pure sum over the ledger. Nothing is
cached and nothing is clamped - an over-repaid liability or an overdrawn
asset simply goes negative.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from zenledger.models.ledger import (
    Account,
    AccountKind,
    Transaction,
    TransactionType,
    new_id,
)
from zenledger.models.periods import to_naive_utc
from zenledger.models.reports import AccountBalance, AccountGroup


CALIBRATION_NOTE = "Manual balance calibration"
CALIBRATION_CATEGORY = "Other"


def signed_delta(kind: AccountKind, transaction: Transaction) -> Decimal:
    """
    The change a transaction makes to an account of the given polarity.

    - Liability: expense increases what is owed, income repays it.
    - Asset / savings goal: income increases the balance, expense decreases it.
    """
    is_expense = transaction.type is TransactionType.EXPENSE

    if kind is AccountKind.LIABILITY:
        return transaction.amount if is_expense else -transaction.amount
    elif kind is AccountKind.ASSET or kind is AccountKind.SAVINGS_GOAL:
        return -transaction.amount if is_expense else transaction.amount

    raise ValueError(f"Unhandled account kind: {kind!r}")


def applies_to(account: Account, transaction: Transaction) -> bool:
    """Unlinked transactions never touch any account."""
    return not transaction.is_unlinked and transaction.account_id == account.id


def balance_as_of(
    account: Account,
    transactions: Iterable[Transaction],
    cutoff: Optional[datetime] = None,
) -> Decimal:
    """
    Resolve an account's balance as of `cutoff` (inclusive).

    With no cutoff every transaction counts. An aware cutoff is compared
    in UTC, the zone transaction dates are stored in.
    """
    if cutoff is not None:
        cutoff = to_naive_utc(cutoff)
    balance = account.initial_balance
    for transaction in transactions:
        if not applies_to(account, transaction):
            continue
        if cutoff is not None and transaction.date > cutoff:
            continue
        balance += signed_delta(account.kind, transaction)
    return balance


def current_balance(account: Account, transactions: Iterable[Transaction]) -> Decimal:
    return balance_as_of(account, transactions)


def goal_progress(account: Account, balance: Decimal) -> Optional[float]:
    """
    Advisory progress toward an account's target, in percent.

    Liabilities measure how much of `debt_amount` has been repaid;
    savings goals measure how much of `savings_goal` has been saved.
    Returns None for plain asset accounts or when no target is set.
    """
    if account.kind is AccountKind.LIABILITY:
        target = account.debt_amount
        achieved = (target - balance) if target else None
    elif account.kind is AccountKind.SAVINGS_GOAL:
        target = account.savings_goal
        achieved = balance if target else None
    else:
        return None

    if not target or achieved is None:
        return None

    percent = float(achieved / target * 100)
    return min(max(percent, 0.0), 100.0)


def account_balances(
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    cutoff: Optional[datetime] = None,
) -> list[AccountBalance]:
    """Resolve every account, keeping the caller's account order."""
    results = []
    for account in accounts:
        balance = balance_as_of(account, transactions, cutoff)
        results.append(AccountBalance(
            account=account,
            balance=balance,
            progress_percent=goal_progress(account, balance),
        ))
    return results


def group_balances(balances: Iterable[AccountBalance]) -> list[AccountGroup]:
    """Group resolved balances by account-type label, in first-seen order."""
    groups: dict[str, list[AccountBalance]] = {}
    for item in balances:
        groups.setdefault(item.account.account_type, []).append(item)

    return [
        AccountGroup(account_type=label, balances=tuple(members))
        for label, members in groups.items()
    ]


def calibration_transaction(
    account: Account,
    transactions: Sequence[Transaction],
    target: Decimal,
    when: datetime,
    category: str = CALIBRATION_CATEGORY,
) -> Optional[Transaction]:
    """
    Build the adjustment that moves an account's current balance to `target`.

    The direction follows the account's polarity, so the new transaction
    moves the balance the right way on both assets and liabilities.
    Returns None when the balance already equals the target.
    """
    diff = Decimal(target) - current_balance(account, transactions)
    if diff == 0:
        return None

    increases = diff > 0
    if account.kind is AccountKind.LIABILITY:
        tx_type = TransactionType.EXPENSE if increases else TransactionType.INCOME
    else:
        tx_type = TransactionType.INCOME if increases else TransactionType.EXPENSE

    return Transaction(
        id=f"adj-{new_id()}",
        amount=abs(diff),
        type=tx_type,
        account_id=account.id,
        category=category,
        date=when,
        note=CALIBRATION_NOTE,
    )
