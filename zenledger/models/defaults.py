"""
Starter ledger for a first run.

Used when storage holds nothing yet. Ids are fixed so a fresh ledger
always looks the same.
"""

from decimal import Decimal

from zenledger.models.ledger import (
    Account,
    Budget,
    BudgetPeriod,
    Category,
    LedgerSnapshot,
)


DEFAULT_CATEGORIES = (
    Category(id="food", name="Food", icon="Utensils", color="#f97316"),
    Category(id="transport", name="Transport", icon="Car", color="#3b82f6"),
    Category(id="shopping", name="Shopping", icon="ShoppingBag", color="#ec4899"),
    Category(id="housing", name="Housing", icon="Home", color="#6366f1"),
    Category(id="entertainment", name="Entertainment", icon="Film", color="#a855f7"),
    Category(id="coffee", name="Coffee & Drinks", icon="Coffee", color="#d97706"),
    Category(id="health", name="Health", icon="Activity", color="#ef4444"),
    Category(id="work", name="Work & Skills", icon="Briefcase", color="#334155"),
    Category(id="digital", name="Digital & Top-ups", icon="Smartphone", color="#06b6d4"),
    Category(id="gift", name="Gifts", icon="Gift", color="#fb7185"),
    Category(id="other", name="Other", icon="MoreHorizontal", color="#9ca3af"),
)

DEFAULT_ACCOUNT_TYPES = (
    "Cash",
    "Payment app",
    "Bank savings",
    "Credit card / Debt",
    "Investments",
)

DEFAULT_ACCOUNTS = (
    Account(id="1", name="Cash", account_type="Cash", color="#7d513d"),
    Account(id="2", name="Wallet app", account_type="Payment app", color="#1677ff"),
    Account(id="3", name="Pay app", account_type="Payment app", color="#07c160"),
    Account(id="4", name="Bank", account_type="Bank savings", color="#333333"),
)

DEFAULT_BUDGETS = (
    Budget.for_period("Food", BudgetPeriod.MONTHLY, Decimal("2000")),
    Budget.for_period("Transport", BudgetPeriod.MONTHLY, Decimal("500")),
    Budget.for_period("Shopping", BudgetPeriod.MONTHLY, Decimal("1500")),
)


def default_snapshot() -> LedgerSnapshot:
    return LedgerSnapshot(
        accounts=DEFAULT_ACCOUNTS,
        budgets=DEFAULT_BUDGETS,
        categories=DEFAULT_CATEGORIES,
        account_types=DEFAULT_ACCOUNT_TYPES,
    )
