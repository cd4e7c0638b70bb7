"""Ingestion validation package."""

from zenledger.validation.validator import (
    IngestionError,
    LedgerValidator,
    issues_from_error,
)

__all__ = ["IngestionError", "LedgerValidator", "issues_from_error"]
