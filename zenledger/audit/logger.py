"""
Audit Logger

DESIGN DECISION: Every change to the ledger and every exchange with an
outer boundary is logged. The engine itself never logs - it is pure -
so auditing happens in the session that applies its results.

The audit logger:
- Is async to match the storage interface
- Gracefully handles failures (a broken audit sink never loses ledger data)
- Supports correlation IDs to trace related events
"""

import re
from typing import Optional
from uuid import UUID, uuid4

import structlog

from zenledger.models.audit import AuditEvent, AuditEventBuilder
from zenledger.models.validation import ValidationIssue
from zenledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


# An import can drop thousands of records; only the first few get their own event.
MAX_DROPPED_RECORD_EVENTS = 20

# Issue fields look like "transactions[3].amount".
RECORD_FIELD = re.compile(r"^(?P<section>\w+)\[(?P<index>\d+)\]")


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("zenledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_snapshot_loaded(
        self,
        location: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_loaded(
            location=location,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_saved(
        self,
        location: str,
        sections: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_saved(
            location=location,
            sections=sections,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        location: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            location=location,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_bundle_imported(
        self,
        counts: dict[str, int],
        dropped: int,
        issues: list[ValidationIssue],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an import, plus one event per dropped record (capped)."""
        await self.log(AuditEventBuilder.bundle_imported(
            counts=counts,
            dropped=dropped,
            correlation_id=correlation_id,
        ))

        reasons: dict[tuple[str, int], list[str]] = {}
        for issue in issues:
            match = RECORD_FIELD.match(issue.field)
            if match is None:
                continue
            key = (match.group("section"), int(match.group("index")))
            reasons.setdefault(key, []).append(f"{issue.field}: {issue.message}")

        for (section, index), messages in list(reasons.items())[:MAX_DROPPED_RECORD_EVENTS]:
            await self.log(AuditEventBuilder.record_dropped(
                section=section,
                index=index,
                reason="; ".join(messages),
                correlation_id=correlation_id,
            ))

    async def log_bundle_exported(
        self,
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.bundle_exported(
            counts=counts,
            correlation_id=correlation_id,
        ))

    async def log_transaction_rejected(
        self,
        issues: list[ValidationIssue],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_rejected(
            issues=[issue.model_dump() for issue in issues],
            correlation_id=correlation_id,
        ))

    async def log_ledger_changed(
        self,
        command: str,
        entity_type: str,
        entity_id: Optional[str],
        sections: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_changed(
            command=command,
            entity_type=entity_type,
            entity_id=entity_id,
            sections=sections,
            correlation_id=correlation_id,
        ))

    async def log_insight_requested(
        self,
        category_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.insight_requested(
            category_count=category_count,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    async def log_insight_generated(
        self,
        generated: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.insight_generated(
            generated=generated,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., an import).
    Pass it through all subsequent operations.
    """
    return uuid4()
