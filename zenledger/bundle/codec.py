"""
Bundle Import / Export

The app stores and exchanges its whole state as one JSON document:

    {
      "transactions": [...], "budgets": [...], "accounts": [...],
      "categories": [...], "accountTypes": [...],
      "settings": {...}, "exportDate": "..."
    }

DESIGN DECISION: An import is forgiving per record but strict about shape.
- A top level that is not an object is rejected outright.
- A section that is missing or not a list is skipped (the base snapshot's
  section is kept).
- A malformed record is dropped and reported; the rest still load.
"""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from zenledger.models.ledger import (
    Account,
    Budget,
    Category,
    LedgerPreferences,
    LedgerSnapshot,
    Transaction,
)
from zenledger.models.validation import ValidationIssue
from zenledger.validation import issues_from_error


# Record sections, in the order they are read.
SECTION_MODELS: dict[str, type[BaseModel]] = {
    "transactions": Transaction,
    "budgets": Budget,
    "accounts": Account,
    "categories": Category,
}

# Sections whose records must have unique ids.
ID_SECTIONS = ("transactions", "accounts", "categories")


class BundleFormatError(ValueError):
    """The document is not a ledger bundle at all."""
    pass


class BundleImport(BaseModel):
    """Outcome of reading a bundle."""

    snapshot: LedgerSnapshot
    counts: dict[str, int] = Field(
        default_factory=dict,
        description="Records loaded per section that was present"
    )
    dropped: int = Field(
        default=0,
        ge=0,
        description="Records rejected as malformed or duplicate"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def sections(self) -> list[str]:
        return list(self.counts)


def _parse_records(
    section: str,
    model: type[BaseModel],
    raw_records: list,
) -> tuple[list[BaseModel], int, list[ValidationIssue]]:
    records = []
    issues = []
    dropped = 0
    seen_ids: set[str] = set()

    for index, raw in enumerate(raw_records):
        prefix = f"{section}[{index}]"
        try:
            record = model.model_validate(raw)
        except ValidationError as e:
            dropped += 1
            issues.extend(issues_from_error(e, prefix=prefix))
            continue

        if section in ID_SECTIONS:
            record_id = getattr(record, "id")
            if record_id in seen_ids:
                dropped += 1
                issues.append(ValidationIssue(
                    field=f"{prefix}.id",
                    issue_type="duplicate_id",
                    message=f"Duplicate id '{record_id}' - only the first record is kept",
                    severity="error",
                ))
                continue
            seen_ids.add(record_id)

        records.append(record)

    return records, dropped, issues


def load_bundle(data: Any, base: Optional[LedgerSnapshot] = None) -> BundleImport:
    """
    Turn a decoded bundle into a snapshot.

    Args:
        data: The decoded JSON document.
        base: Snapshot whose sections are kept when the bundle omits them.
              Defaults to an empty ledger.

    Raises:
        BundleFormatError: If the top level is not an object.
    """
    if not isinstance(data, dict):
        raise BundleFormatError(
            f"Bundle must be a JSON object, got {type(data).__name__}"
        )

    base = base or LedgerSnapshot()
    updates: dict[str, Any] = {}
    counts: dict[str, int] = {}
    issues: list[ValidationIssue] = []
    dropped = 0

    for section, model in SECTION_MODELS.items():
        raw = data.get(section)
        if raw is None:
            continue
        if not isinstance(raw, list):
            issues.append(ValidationIssue(
                field=section,
                issue_type="invalid_section",
                message=f"Section '{section}' is not a list and was ignored",
                severity="warning",
            ))
            continue

        records, section_dropped, section_issues = _parse_records(section, model, raw)
        updates[section] = tuple(records)
        counts[section] = len(records)
        dropped += section_dropped
        issues.extend(section_issues)

    account_types = data.get("accountTypes")
    if isinstance(account_types, list):
        labels = [
            label.strip() for label in account_types
            if isinstance(label, str) and label.strip()
        ]
        dropped += len(account_types) - len(labels)
        updates["account_types"] = tuple(labels)
        counts["accountTypes"] = len(labels)

    settings = data.get("settings")
    if isinstance(settings, dict):
        try:
            updates["preferences"] = LedgerPreferences.model_validate(settings)
        except ValidationError as e:
            issues.extend(issues_from_error(e, prefix="settings"))

    return BundleImport(
        snapshot=base.model_copy(update=updates),
        counts=counts,
        dropped=dropped,
        issues=issues,
    )


def parse_bundle_json(text: str, base: Optional[LedgerSnapshot] = None) -> BundleImport:
    """Decode and load a bundle from JSON text."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise BundleFormatError(f"Bundle is not valid JSON: {e}") from e
    return load_bundle(data, base)


def export_bundle(snapshot: LedgerSnapshot, exported_at: datetime) -> dict:
    """The JSON-ready document for a snapshot."""
    data = snapshot.model_dump(
        mode="json",
        by_alias=True,
        exclude={"preferences"},
    )
    data["settings"] = snapshot.preferences.model_dump(mode="json", by_alias=True)
    data["exportDate"] = exported_at.isoformat()
    return data


def dump_bundle_json(
    snapshot: LedgerSnapshot,
    exported_at: datetime,
    indent: Optional[int] = 2,
) -> str:
    return json.dumps(
        export_bundle(snapshot, exported_at),
        ensure_ascii=False,
        indent=indent,
    )


def section_counts(snapshot: LedgerSnapshot) -> dict[str, int]:
    return {
        "transactions": len(snapshot.transactions),
        "budgets": len(snapshot.budgets),
        "accounts": len(snapshot.accounts),
        "categories": len(snapshot.categories),
        "accountTypes": len(snapshot.account_types),
    }
