"""
JSON File Storage Implementation

DESIGN DECISION: The ledger is small (a few thousand transactions at most)
and is always read and written whole, so a single JSON document is enough:
1. The file is the same bundle the app exports, so backups are just copies
2. No database setup required
3. Easy to inspect and migrate

TRADEOFFS:
- Every save rewrites the whole document (fine at this scale)
- Single writer only; there is no locking

Writes go to a temporary file first and are moved into place, so a crash
mid-write never leaves a half-written ledger behind.
"""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from zenledger.bundle import BundleFormatError, dump_bundle_json, parse_bundle_json
from zenledger.config import get_settings
from zenledger.models.audit import AuditEvent
from zenledger.models.ledger import LedgerSnapshot
from zenledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    SnapshotCorruptError,
    StorageError,
)


logger = structlog.get_logger(__name__)


class JsonFileLedgerStorage(LedgerStorageInterface):
    """Stores the ledger bundle as one JSON document on disk."""

    def __init__(self, path: Optional[str] = None):
        self._path = Path(path or get_settings().storage.data_file)

    @property
    def location(self) -> str:
        return str(self._path)

    async def load_snapshot(self) -> Optional[LedgerSnapshot]:
        if not self._path.exists():
            return None

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not read ledger file {self._path}: {e}") from e

        try:
            imported = parse_bundle_json(text)
        except BundleFormatError as e:
            raise SnapshotCorruptError(f"Ledger file {self._path} is corrupt: {e}") from e

        if imported.dropped:
            logger.warning(
                "ledger_records_dropped_on_load",
                location=self.location,
                dropped=imported.dropped,
                issues=[issue.model_dump() for issue in imported.issues[:20]],
            )
        return imported.snapshot

    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        document = dump_bundle_json(snapshot, exported_at=datetime.utcnow())
        try:
            self._write_atomically(document)
        except OSError as e:
            raise StorageError(f"Could not write ledger file {self._path}: {e}") from e
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_atomically(self, document: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(document)
            os.replace(tmp_path, self._path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise


class JsonLinesAuditStorage(AuditStorageInterface):
    """Append-only audit trail, one JSON object per line."""

    def __init__(self, path: Optional[str] = None):
        self._path = Path(path or get_settings().storage.audit_file)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(event.to_json_line() + "\n")
        return True

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        with self._path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValidationError) as e:
                    logger.warning(
                        "audit_line_unreadable",
                        location=str(self._path),
                        line=line_number,
                        error=str(e),
                    )
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._read_events() if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._read_events()
        events.reverse()
        return events[:limit]
