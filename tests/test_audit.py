"""
Tests for the audit logger.
"""

import asyncio
import pytest

from zenledger.audit import AuditLogger, create_correlation_id
from zenledger.models import AuditEventBuilder, AuditEventType, ValidationIssue
from zenledger.services.storage import InMemoryAuditStorage


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise OSError("read-only file system")


class TestAuditLogger:
    """Tests for local and persisted audit logging."""

    def test_log_without_storage(self):
        """Test that local-only logging succeeds."""
        logger = AuditLogger()
        event = AuditEventBuilder.bundle_exported(counts={})
        assert asyncio.run(logger.log(event)) is True

    def test_log_persists(self):
        """Test that events reach storage."""
        storage = InMemoryAuditStorage()
        asyncio.run(AuditLogger(storage).log_error("ValueError", "bad input"))
        assert storage.events[0].event_type == AuditEventType.SYSTEM_ERROR

    def test_storage_failure_is_not_raised(self):
        """Test that a broken audit sink never breaks the caller."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.bundle_exported(counts={})
        assert asyncio.run(logger.log(event)) is False

    def test_bundle_import_groups_issues_per_record(self):
        """Test one dropped-record event per record, not per issue."""
        storage = InMemoryAuditStorage()
        correlation_id = create_correlation_id()
        issues = [
            ValidationIssue(field="transactions[4].amount", issue_type="decimal_parsing",
                            message="bad amount", severity="error"),
            ValidationIssue(field="transactions[4].type", issue_type="enum",
                            message="bad type", severity="error"),
            ValidationIssue(field="accounts", issue_type="invalid_section",
                            message="not a list", severity="warning"),
        ]
        asyncio.run(AuditLogger(storage).log_bundle_imported(
            counts={"transactions": 4},
            dropped=1,
            issues=issues,
            correlation_id=correlation_id,
        ))

        types = [e.event_type for e in storage.events]
        assert types == [AuditEventType.BUNDLE_IMPORTED, AuditEventType.RECORD_DROPPED]
        dropped = storage.events[1]
        assert dropped.details["section"] == "transactions"
        assert dropped.details["index"] == 4
        assert "bad type" in dropped.details["reason"]
        assert all(e.correlation_id == correlation_id for e in storage.events)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
