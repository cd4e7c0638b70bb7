"""
Abstract Storage Interface

DESIGN DECISION: The engine never touches storage. Hosts load a snapshot
through this interface, hand it to the engine, and save the snapshot a
command returns. This allows us to:
1. Keep the JSON document today and swap in a database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from persistence

The interface is intentionally tiny: the whole ledger is one document.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from zenledger.models.audit import AuditEvent
from zenledger.models.ledger import LedgerSnapshot


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage.

    Any storage implementation (JSON file, SQLite, etc.)
    must implement these methods.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable description of where the ledger lives."""
        pass

    @abstractmethod
    async def load_snapshot(self) -> Optional[LedgerSnapshot]:
        """
        Load the stored ledger.

        Returns:
            The snapshot, or None if nothing has been stored yet

        Raises:
            SnapshotCorruptError: If stored data cannot be read back
        """
        pass

    @abstractmethod
    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        """
        Replace the stored ledger with `snapshot`.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one import).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class SnapshotCorruptError(StorageError):
    """Stored data exists but is not a readable ledger."""
    pass
