"""
Ledger Orchestrator

This module ties the engine, the bundle codec, storage, auditing and the
insight agent together.

DESIGN DECISION: Commands are pure functions
    (snapshot, arguments) -> LedgerChange(snapshot, writes)
They never touch storage. A LedgerChange carries the new snapshot plus
the list of writes the host must persist; an empty list means nothing
changed. LedgerSession is the only place that saves, and it audits every
change it saves.

This keeps the engine testable without storage and lets a host decide
how (and whether) to persist.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zenledger.agents import FinancialInsight, InsightAgent, build_insight_request
from zenledger.audit import AuditLogger, create_correlation_id
from zenledger.bundle import BundleImport, export_bundle, load_bundle, section_counts
from zenledger.config import LedgerSettings, get_settings
from zenledger.engine import (
    account_balances,
    budget_status,
    calibration_transaction,
    group_balances,
    month_summary,
    net_worth_as_of,
    net_worth_series,
    period_summary,
    set_budget_limit,
)
from zenledger.models.defaults import default_snapshot
from zenledger.models.ledger import (
    UNLINKED_ACCOUNT_ID,
    Account,
    BudgetPeriod,
    Category,
    LedgerPreferences,
    LedgerSnapshot,
    Transaction,
)
from zenledger.models.periods import MonthPeriod, TrendPreset, TrendWindow
from zenledger.models.reports import Dashboard
from zenledger.models.validation import ValidationIssue
from zenledger.services.storage import (
    LedgerStorageInterface,
    SnapshotCorruptError,
    StorageError,
)
from zenledger.validation import IngestionError, LedgerValidator, issues_from_error


# =============================================================================
# COMMAND RESULTS AND ERRORS
# =============================================================================

class PendingWrite(BaseModel):
    """One section of the stored ledger that must be rewritten."""
    model_config = ConfigDict(frozen=True)

    section: str = Field(
        ...,
        description="Bundle section: transactions, budgets, accounts, "
                    "categories, accountTypes or settings"
    )
    operation: str = Field(..., pattern=r"^(upsert|delete|replace|reorder)$")
    entity_id: Optional[str] = None


class LedgerChange(BaseModel):
    """The outcome of a command."""
    model_config = ConfigDict(frozen=True)

    command: str
    entity_type: str
    entity_id: Optional[str] = None
    snapshot: LedgerSnapshot
    writes: tuple[PendingWrite, ...] = ()
    issues: tuple[ValidationIssue, ...] = Field(
        default=(),
        description="Non-blocking warnings raised while applying the command"
    )
    bundle: Optional[BundleImport] = Field(
        default=None,
        description="Import details, for import_bundle only"
    )

    @property
    def changed(self) -> bool:
        return bool(self.writes)

    @property
    def sections(self) -> list[str]:
        """Sections touched, in first-write order."""
        seen: list[str] = []
        for write in self.writes:
            if write.section not in seen:
                seen.append(write.section)
        return seen


class LedgerCommandError(Exception):
    """A command could not be applied to the snapshot."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []


class NotFoundError(LedgerCommandError):
    """The command referred to an id or name that does not exist."""
    pass


def _unchanged(snapshot: LedgerSnapshot, command: str, entity_type: str,
               entity_id: Optional[str] = None) -> LedgerChange:
    return LedgerChange(
        command=command,
        entity_type=entity_type,
        entity_id=entity_id,
        snapshot=snapshot,
    )


def _move(items: tuple, from_index: int, to_index: int) -> tuple:
    if not (0 <= from_index < len(items)) or not (0 <= to_index < len(items)):
        raise LedgerCommandError(
            f"Cannot move item {from_index} to {to_index} in a list of {len(items)}"
        )
    reordered = list(items)
    item = reordered.pop(from_index)
    reordered.insert(to_index, item)
    return tuple(reordered)


# =============================================================================
# TRANSACTION COMMANDS
# =============================================================================

def add_transaction(
    snapshot: LedgerSnapshot,
    raw: Union[Transaction, dict],
    today: Optional[date] = None,
    settings: Optional[LedgerSettings] = None,
) -> LedgerChange:
    """
    Validate and record a new transaction.

    When account linking is switched off the transaction is always
    recorded as unlinked. New transactions go to the end of the list.

    Raises:
        IngestionError: If the record fails validation.
    """
    result = LedgerValidator(snapshot, settings).validate_transaction(raw, today)
    if not result.is_valid or result.transaction is None:
        raise IngestionError(result)

    transaction = result.transaction
    if not snapshot.preferences.enable_account_linking and not transaction.is_unlinked:
        transaction = transaction.model_copy(update={"account_id": UNLINKED_ACCOUNT_ID})

    if any(t.id == transaction.id for t in snapshot.transactions):
        raise LedgerCommandError(f"Transaction '{transaction.id}' already exists")

    return LedgerChange(
        command="add_transaction",
        entity_type="transaction",
        entity_id=transaction.id,
        snapshot=snapshot.model_copy(
            update={"transactions": snapshot.transactions + (transaction,)}
        ),
        writes=(PendingWrite(section="transactions", operation="upsert",
                             entity_id=transaction.id),),
        issues=tuple(result.issues),
    )


def replace_transaction(
    snapshot: LedgerSnapshot,
    transaction_id: str,
    raw: Union[Transaction, dict],
    today: Optional[date] = None,
    settings: Optional[LedgerSettings] = None,
) -> LedgerChange:
    """Swap a transaction for a validated replacement that keeps its id."""
    if not any(t.id == transaction_id for t in snapshot.transactions):
        raise NotFoundError(f"Transaction '{transaction_id}' not found")

    result = LedgerValidator(snapshot, settings).validate_transaction(raw, today)
    if not result.is_valid or result.transaction is None:
        raise IngestionError(result)
    replacement = result.transaction.model_copy(update={"id": transaction_id})

    return LedgerChange(
        command="replace_transaction",
        entity_type="transaction",
        entity_id=transaction_id,
        snapshot=snapshot.model_copy(update={"transactions": tuple(
            replacement if t.id == transaction_id else t
            for t in snapshot.transactions
        )}),
        writes=(PendingWrite(section="transactions", operation="replace",
                             entity_id=transaction_id),),
        issues=tuple(result.issues),
    )


def delete_transaction(snapshot: LedgerSnapshot, transaction_id: str) -> LedgerChange:
    remaining = tuple(t for t in snapshot.transactions if t.id != transaction_id)
    if len(remaining) == len(snapshot.transactions):
        raise NotFoundError(f"Transaction '{transaction_id}' not found")

    return LedgerChange(
        command="delete_transaction",
        entity_type="transaction",
        entity_id=transaction_id,
        snapshot=snapshot.model_copy(update={"transactions": remaining}),
        writes=(PendingWrite(section="transactions", operation="delete",
                             entity_id=transaction_id),),
    )


# =============================================================================
# ACCOUNT COMMANDS
# =============================================================================

def save_account(snapshot: LedgerSnapshot, raw: Union[Account, dict]) -> LedgerChange:
    """
    Create or update an account (matched by id).

    An `account_type` label that is not known yet is added to the
    snapshot's account types.
    """
    if isinstance(raw, Account):
        account = raw
    else:
        try:
            account = Account.model_validate(raw)
        except ValidationError as e:
            raise LedgerCommandError(
                "Invalid account",
                issues=issues_from_error(e, prefix="account"),
            ) from e

    exists = snapshot.account_by_id(account.id) is not None
    if exists:
        accounts = tuple(account if a.id == account.id else a for a in snapshot.accounts)
    else:
        accounts = snapshot.accounts + (account,)

    updates: dict[str, Any] = {"accounts": accounts}
    writes = [PendingWrite(section="accounts", operation="upsert", entity_id=account.id)]

    if account.account_type and account.account_type not in snapshot.account_types:
        updates["account_types"] = snapshot.account_types + (account.account_type,)
        writes.append(PendingWrite(section="accountTypes", operation="upsert",
                                   entity_id=account.account_type))

    return LedgerChange(
        command="update_account" if exists else "create_account",
        entity_type="account",
        entity_id=account.id,
        snapshot=snapshot.model_copy(update=updates),
        writes=tuple(writes),
    )


def delete_account(snapshot: LedgerSnapshot, account_id: str) -> LedgerChange:
    """
    Remove an account. Its transactions are kept and simply stop
    contributing to any balance.
    """
    if snapshot.account_by_id(account_id) is None:
        raise NotFoundError(f"Account '{account_id}' not found")

    return LedgerChange(
        command="delete_account",
        entity_type="account",
        entity_id=account_id,
        snapshot=snapshot.model_copy(update={
            "accounts": tuple(a for a in snapshot.accounts if a.id != account_id)
        }),
        writes=(PendingWrite(section="accounts", operation="delete",
                             entity_id=account_id),),
    )


def move_account(snapshot: LedgerSnapshot, from_index: int, to_index: int) -> LedgerChange:
    if from_index == to_index:
        return _unchanged(snapshot, "move_account", "account")
    accounts = _move(snapshot.accounts, from_index, to_index)
    return LedgerChange(
        command="move_account",
        entity_type="account",
        entity_id=accounts[to_index].id,
        snapshot=snapshot.model_copy(update={"accounts": accounts}),
        writes=(PendingWrite(section="accounts", operation="reorder"),),
    )


def calibrate_balance(
    snapshot: LedgerSnapshot,
    account_id: str,
    target: Decimal,
    when: datetime,
) -> LedgerChange:
    """
    Record the adjustment that brings an account to a stated balance.

    Nothing is written when the balance already matches.
    """
    account = snapshot.account_by_id(account_id)
    if account is None:
        raise NotFoundError(f"Account '{account_id}' not found")

    adjustment = calibration_transaction(account, snapshot.transactions, target, when)
    if adjustment is None:
        return _unchanged(snapshot, "calibrate_balance", "account", account_id)

    return LedgerChange(
        command="calibrate_balance",
        entity_type="transaction",
        entity_id=adjustment.id,
        snapshot=snapshot.model_copy(
            update={"transactions": snapshot.transactions + (adjustment,)}
        ),
        writes=(PendingWrite(section="transactions", operation="upsert",
                             entity_id=adjustment.id),),
    )


# =============================================================================
# CATEGORY AND BUDGET COMMANDS
# =============================================================================

def add_category(
    snapshot: LedgerSnapshot,
    name: str,
    icon: Optional[str] = None,
    color: Optional[str] = None,
) -> LedgerChange:
    name = name.strip()
    if snapshot.category_by_name(name) is not None:
        raise LedgerCommandError(f"Category '{name}' already exists")

    fields: dict[str, Any] = {"name": name}
    if icon:
        fields["icon"] = icon
    if color:
        fields["color"] = color
    try:
        category = Category(**fields)
    except ValidationError as e:
        raise LedgerCommandError(
            "Invalid category",
            issues=issues_from_error(e, prefix="category"),
        ) from e

    return LedgerChange(
        command="add_category",
        entity_type="category",
        entity_id=category.id,
        snapshot=snapshot.model_copy(
            update={"categories": snapshot.categories + (category,)}
        ),
        writes=(PendingWrite(section="categories", operation="upsert",
                             entity_id=category.id),),
    )


def rename_category(snapshot: LedgerSnapshot, category_id: str, new_name: str) -> LedgerChange:
    """
    Rename a category and every transaction and budget that uses its name.

    This is the only command that cascades.
    """
    category = next((c for c in snapshot.categories if c.id == category_id), None)
    if category is None:
        raise NotFoundError(f"Category '{category_id}' not found")

    new_name = new_name.strip()
    if not new_name:
        raise LedgerCommandError("Category name cannot be empty")
    if new_name == category.name:
        return _unchanged(snapshot, "rename_category", "category", category_id)
    if snapshot.category_by_name(new_name) is not None:
        raise LedgerCommandError(f"Category '{new_name}' already exists")

    old_name = category.name
    categories = tuple(
        c.model_copy(update={"name": new_name}) if c.id == category_id else c
        for c in snapshot.categories
    )
    transactions = tuple(
        t.model_copy(update={"category": new_name}) if t.category == old_name else t
        for t in snapshot.transactions
    )
    budgets = tuple(
        b.model_copy(update={"category": new_name}) if b.category == old_name else b
        for b in snapshot.budgets
    )

    writes = [PendingWrite(section="categories", operation="upsert", entity_id=category_id)]
    if transactions != snapshot.transactions:
        writes.append(PendingWrite(section="transactions", operation="replace"))
    if budgets != snapshot.budgets:
        writes.append(PendingWrite(section="budgets", operation="replace"))

    return LedgerChange(
        command="rename_category",
        entity_type="category",
        entity_id=category_id,
        snapshot=snapshot.model_copy(update={
            "categories": categories,
            "transactions": transactions,
            "budgets": budgets,
        }),
        writes=tuple(writes),
    )


def delete_category(snapshot: LedgerSnapshot, category_id: str) -> LedgerChange:
    """Remove a category. Transactions and budgets keep the old name."""
    remaining = tuple(c for c in snapshot.categories if c.id != category_id)
    if len(remaining) == len(snapshot.categories):
        raise NotFoundError(f"Category '{category_id}' not found")

    return LedgerChange(
        command="delete_category",
        entity_type="category",
        entity_id=category_id,
        snapshot=snapshot.model_copy(update={"categories": remaining}),
        writes=(PendingWrite(section="categories", operation="delete",
                             entity_id=category_id),),
    )


def move_category(snapshot: LedgerSnapshot, from_index: int, to_index: int) -> LedgerChange:
    if from_index == to_index:
        return _unchanged(snapshot, "move_category", "category")
    categories = _move(snapshot.categories, from_index, to_index)
    return LedgerChange(
        command="move_category",
        entity_type="category",
        entity_id=categories[to_index].id,
        snapshot=snapshot.model_copy(update={"categories": categories}),
        writes=(PendingWrite(section="categories", operation="reorder"),),
    )


def update_budget(
    snapshot: LedgerSnapshot,
    category: str,
    period: Union[BudgetPeriod, str],
    value: Decimal,
) -> LedgerChange:
    """Set one of a category's budget limits; the other two follow."""
    try:
        budgets = set_budget_limit(snapshot.budgets, category, BudgetPeriod(period), value)
    except ValueError as e:
        raise LedgerCommandError(str(e)) from e

    return LedgerChange(
        command="update_budget",
        entity_type="budget",
        entity_id=category,
        snapshot=snapshot.model_copy(update={"budgets": budgets}),
        writes=(PendingWrite(section="budgets", operation="upsert", entity_id=category),),
    )


# =============================================================================
# SETTINGS, IMPORT AND RESET
# =============================================================================

def update_preferences(snapshot: LedgerSnapshot, **changes: bool) -> LedgerChange:
    """
    Toggle preferences, e.g. update_preferences(s, enable_budget_accumulation=True).

    Unknown names are rejected.
    """
    known = set(LedgerPreferences.model_fields)
    unknown = sorted(set(changes) - known)
    if unknown:
        raise LedgerCommandError(f"Unknown preferences: {', '.join(unknown)}")

    current = snapshot.preferences.model_dump()
    merged = {**current, **changes}
    if merged == current:
        return _unchanged(snapshot, "update_preferences", "settings")

    try:
        preferences = LedgerPreferences.model_validate(merged)
    except ValidationError as e:
        raise LedgerCommandError(
            "Invalid preferences",
            issues=issues_from_error(e, prefix="settings"),
        ) from e

    return LedgerChange(
        command="update_preferences",
        entity_type="settings",
        snapshot=snapshot.model_copy(update={"preferences": preferences}),
        writes=(PendingWrite(section="settings", operation="replace"),),
    )


def import_bundle(snapshot: LedgerSnapshot, data: Any) -> LedgerChange:
    """
    Replace the sections an imported bundle provides.

    Sections the bundle lacks keep their current contents.

    Raises:
        BundleFormatError: If `data` is not a bundle object.
    """
    imported = load_bundle(data, base=snapshot)
    writes = [
        PendingWrite(section=section, operation="replace")
        for section in imported.sections
    ]
    if imported.snapshot.preferences != snapshot.preferences:
        writes.append(PendingWrite(section="settings", operation="replace"))

    return LedgerChange(
        command="import_bundle",
        entity_type="bundle",
        snapshot=imported.snapshot,
        writes=tuple(writes),
        issues=tuple(imported.issues),
        bundle=imported,
    )


def reset_ledger(snapshot: LedgerSnapshot) -> LedgerChange:
    """Throw everything away and start over from the starter ledger."""
    return LedgerChange(
        command="reset_ledger",
        entity_type="ledger",
        snapshot=default_snapshot(),
        writes=tuple(
            PendingWrite(section=section, operation="replace")
            for section in (*section_counts(snapshot), "settings")
        ),
    )


# =============================================================================
# READ SIDE
# =============================================================================

def build_dashboard(
    snapshot: LedgerSnapshot,
    month: MonthPeriod,
    today: date,
    trend: Union[TrendPreset, str] = TrendPreset.LAST_30_DAYS,
    daily_max_days: Optional[int] = None,
) -> Dashboard:
    """Compute every figure the main screen needs."""
    if daily_max_days is None:
        daily_max_days = get_settings().ledger.daily_granularity_max_days

    balances = account_balances(snapshot.accounts, snapshot.transactions)
    composition = period_summary(snapshot.transactions, month.first_day, month.last_day)

    return Dashboard(
        month=month_summary(snapshot.transactions, month),
        net_worth=net_worth_as_of(snapshot.accounts, snapshot.transactions),
        accounts=tuple(balances),
        account_groups=tuple(group_balances(balances)),
        budgets=tuple(budget_status(
            snapshot.budgets,
            snapshot.transactions,
            month,
            snapshot.preferences.rollover_rules,
        )),
        expense_composition=composition.by_category,
        net_worth_trend=net_worth_series(
            snapshot.accounts,
            snapshot.transactions,
            TrendWindow.preset(trend, today),
            daily_max_days,
        ),
    )


# =============================================================================
# SESSION
# =============================================================================

class LedgerSession:
    """
    Holds the current snapshot for one host and persists command results.

    Flow:
    1. load() → read storage (or start from the starter ledger)
    2. execute(command, ...) → run a pure command against the snapshot
    3. If the command produced writes → save, then audit

    A failed save leaves the in-memory snapshot untouched.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger
        self._snapshot: Optional[LedgerSnapshot] = None

    @property
    def snapshot(self) -> LedgerSnapshot:
        if self._snapshot is None:
            raise RuntimeError("Ledger not loaded - call load() first")
        return self._snapshot

    async def load(self, correlation_id: Optional[UUID] = None) -> LedgerSnapshot:
        """Load the ledger, falling back to the starter ledger when storage is empty."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            snapshot = await self._storage.load_snapshot()
        except SnapshotCorruptError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="SnapshotCorruptError",
                    error_message=str(e),
                    details={"location": self._storage.location},
                    correlation_id=correlation_id,
                )
            raise

        self._snapshot = snapshot if snapshot is not None else default_snapshot()

        if self._audit_logger:
            await self._audit_logger.log_snapshot_loaded(
                location=self._storage.location,
                transaction_count=len(self._snapshot.transactions),
                correlation_id=correlation_id,
            )
        return self._snapshot

    async def execute(
        self,
        command: Callable[..., LedgerChange],
        *args: Any,
        correlation_id: Optional[UUID] = None,
        **kwargs: Any,
    ) -> LedgerChange:
        """
        Run a command against the current snapshot and persist the result.

        Raises:
            IngestionError: Rejected transaction (audited).
            LedgerCommandError: The command could not be applied.
            StorageError: The save failed (audited); nothing changed.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            change = command(self.snapshot, *args, **kwargs)
        except IngestionError as e:
            if self._audit_logger:
                await self._audit_logger.log_transaction_rejected(
                    issues=e.result.issues,
                    correlation_id=correlation_id,
                )
            raise

        await self.apply(change, correlation_id)
        return change

    async def apply(
        self,
        change: LedgerChange,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerSnapshot:
        """Persist a change that carries writes, then adopt its snapshot."""
        if not change.changed:
            return self.snapshot

        correlation_id = correlation_id or create_correlation_id()
        sections = change.sections

        try:
            await self._storage.save_snapshot(change.snapshot)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    location=self._storage.location,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        self._snapshot = change.snapshot

        if self._audit_logger:
            if change.bundle is not None:
                await self._audit_logger.log_bundle_imported(
                    counts=change.bundle.counts,
                    dropped=change.bundle.dropped,
                    issues=change.bundle.issues,
                    correlation_id=correlation_id,
                )
            await self._audit_logger.log_ledger_changed(
                command=change.command,
                entity_type=change.entity_type,
                entity_id=change.entity_id,
                sections=sections,
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_snapshot_saved(
                location=self._storage.location,
                sections=sections,
                correlation_id=correlation_id,
            )
        return self._snapshot

    async def export(
        self,
        exported_at: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict:
        """The backup document for the current snapshot."""
        document = export_bundle(self.snapshot, exported_at or datetime.utcnow())
        if self._audit_logger:
            await self._audit_logger.log_bundle_exported(
                counts=section_counts(self.snapshot),
                correlation_id=correlation_id,
            )
        return document

    def dashboard(
        self,
        month: MonthPeriod,
        today: date,
        trend: Union[TrendPreset, str] = TrendPreset.LAST_30_DAYS,
    ) -> Dashboard:
        return build_dashboard(
            self.snapshot,
            month,
            today,
            trend,
            self._settings.daily_granularity_max_days,
        )

    async def request_insight(
        self,
        agent: InsightAgent,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[FinancialInsight]:
        """Ask the insight agent about the current ledger. Never raises on model failure."""
        correlation_id = correlation_id or create_correlation_id()
        request = build_insight_request(
            self.snapshot.transactions,
            self.snapshot.budgets,
            self._settings.insight_recent_transactions,
        )

        if self._audit_logger:
            await self._audit_logger.log_insight_requested(
                category_count=len(request.category_spend),
                transaction_count=len(request.recent_transactions),
                correlation_id=correlation_id,
            )

        insight = await agent.generate(request)

        if self._audit_logger:
            if insight is None:
                await self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message="No insight generated",
                    correlation_id=correlation_id,
                )
            await self._audit_logger.log_insight_generated(
                generated=insight is not None,
                correlation_id=correlation_id,
            )
        return insight
