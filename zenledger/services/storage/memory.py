"""
In-Memory Storage

Keeps the ledger and audit trail in process memory. Used by tests and
by hosts that persist elsewhere (e.g. a browser's local storage) and
only need the session's change tracking.
"""

from typing import Optional
from uuid import UUID

from zenledger.models.audit import AuditEvent
from zenledger.models.ledger import LedgerSnapshot
from zenledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):

    def __init__(self, snapshot: Optional[LedgerSnapshot] = None):
        self._snapshot = snapshot
        self.save_count = 0

    @property
    def location(self) -> str:
        return "memory"

    async def load_snapshot(self) -> Optional[LedgerSnapshot]:
        return self._snapshot

    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        self._snapshot = snapshot
        self.save_count += 1
        return True


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self.events if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
