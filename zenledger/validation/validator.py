"""
Two-Stage Ingestion Validation

DESIGN DECISION: The engine assumes valid input. Everything that could
make a computation wrong is rejected here, before a record ever reaches
the ledger.

STAGE 1 - SCHEMA VALIDATION:
- Type checking (a non-numeric amount is an error, never zero)
- Required field presence
- amount > 0, type in {expense, income}

STAGE 2 - SEMANTIC VALIDATION:
- Dangling account or category references
- Future dates
- Absurd amounts
- These are warnings: the ledger tolerates them

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the host to show.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from zenledger.config import LedgerSettings, get_settings
from zenledger.models.ledger import LedgerSnapshot, Transaction
from zenledger.models.validation import ValidationIssue, ValidationResult


class IngestionError(Exception):
    """A record failed validation and must not enter the ledger."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            f"{issue.field}: {issue.message}"
            for issue in result.issues
            if issue.severity == "error"
        )
        super().__init__(f"Invalid transaction: {messages}")


def issues_from_error(error: ValidationError, prefix: str = "") -> list[ValidationIssue]:
    """Translate a pydantic ValidationError into error-level issues."""
    issues = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ()))
        field = ".".join(part for part in (prefix, location) if part) or "record"
        issues.append(ValidationIssue(
            field=field,
            issue_type=detail.get("type", "invalid"),
            message=detail.get("msg", "Invalid value"),
            severity="error",
        ))
    return issues


class LedgerValidator:
    """
    Validates incoming transactions through a two-stage pipeline.

    Stage 1 needs nothing but the record.
    Stage 2 checks references against a snapshot when one is given.
    """

    def __init__(
        self,
        snapshot: Optional[LedgerSnapshot] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        """
        Initialize validator.

        Args:
            snapshot: Current ledger, for reference checks.
                      If None, reference checks are skipped.
            settings: Ledger settings; loaded from the environment if None.
        """
        self._snapshot = snapshot
        self._settings = settings or get_settings().ledger

    def _validate_schema(
        self,
        raw: Any,
    ) -> tuple[Optional[Transaction], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (transaction_or_none, list_of_issues)
        """
        if isinstance(raw, Transaction):
            return raw, []

        if not isinstance(raw, dict):
            return None, [ValidationIssue(
                field="transaction",
                issue_type="invalid_type",
                message=f"Expected an object, got {type(raw).__name__}",
                severity="error",
            )]

        try:
            return Transaction.model_validate(raw), []
        except ValidationError as e:
            return None, issues_from_error(e)

    def _validate_semantic(
        self,
        transaction: Transaction,
        today: date,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Everything here is a warning - dangling references and odd
        values are tolerated by the engine.
        """
        issues = []

        if self._snapshot is not None:
            if (
                not transaction.is_unlinked
                and self._snapshot.account_by_id(transaction.account_id) is None
            ):
                issues.append(ValidationIssue(
                    field="account_id",
                    issue_type="dangling_account",
                    message=f"Account '{transaction.account_id}' does not exist",
                    severity="warning",
                    suggested_fix="The transaction will not affect any balance",
                ))

            if (
                transaction.category
                and self._snapshot.categories
                and self._snapshot.category_by_name(transaction.category) is None
            ):
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="dangling_category",
                    message=f"Category '{transaction.category}' does not exist",
                    severity="warning",
                    suggested_fix="It will be shown as an unknown category",
                ))

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if transaction.date.date() > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({transaction.date.date()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if transaction.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({transaction.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def validate_transaction(
        self,
        raw: Any,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """Run both stages. Stage 2 is skipped when stage 1 fails."""
        today = today or date.today()

        transaction, schema_issues = self._validate_schema(raw)
        if transaction is None:
            return ValidationResult(
                schema_valid=False,
                semantic_valid=False,
                is_valid=False,
                issues=schema_issues,
            )

        semantic_issues = self._validate_semantic(transaction, today)
        semantic_valid = not any(i.severity == "error" for i in semantic_issues)

        return ValidationResult(
            schema_valid=True,
            semantic_valid=semantic_valid,
            is_valid=semantic_valid,
            transaction=transaction,
            issues=semantic_issues,
        )

    def parse_transaction(
        self,
        raw: Any,
        today: Optional[date] = None,
    ) -> Transaction:
        """
        Validate and return the transaction.

        Raises:
            IngestionError: If any error-level issue was found.
        """
        result = self.validate_transaction(raw, today)
        if not result.is_valid or result.transaction is None:
            raise IngestionError(result)
        return result.transaction
