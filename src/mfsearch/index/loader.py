"""Bulk loading of pre-built records from JSON Lines files."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Iterable, Sequence

from mfsearch.catalog import COLLECTIONS
from mfsearch.errors import MfsearchError, ValidationError
from mfsearch.index.storage import SQLiteStore
from mfsearch.models import Document, ModuleRecord, WorkflowRecord

LOGGER = logging.getLogger(__name__)

RECORD_TYPES = {
    "document": Document,
    "module": ModuleRecord,
    "workflow": WorkflowRecord,
}


@dataclass(slots=True)
class LoadStats:
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def increment(self, status: str) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        else:
            self.failed += 1


def build_record(raw: Any) -> Document | ModuleRecord | WorkflowRecord:
    """Turn one decoded JSON object into a record, checking type and collection."""
    if not isinstance(raw, dict):
        raise ValidationError(f"Expected a JSON object, got {type(raw).__name__}")
    data = dict(raw)
    record_type = data.pop("type", None)
    cls = RECORD_TYPES.get(record_type) if isinstance(record_type, str) else None
    if cls is None:
        raise ValidationError(f"Unknown record type {record_type!r}; expected one of {', '.join(RECORD_TYPES)}")
    name = data.get("collection")
    collection = COLLECTIONS.get(name) if isinstance(name, str) else None
    if collection is None:
        raise ValidationError(f"Unknown collection {name!r}")
    if cls is not Document and not collection.is_code:
        raise ValidationError(f"{record_type} records require a code collection, got {collection.name}")

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValidationError(f"Unknown {record_type} fields: {', '.join(unknown)}")
    try:
        return cls(**data)
    except TypeError as exc:
        raise ValidationError(f"Invalid {record_type} record: {exc}") from exc


def load_records(store: SQLiteStore, lines: Iterable[str], *, source: str = "<input>") -> LoadStats:
    """Insert or replace every record in ``lines``; bad lines are counted, not fatal."""
    stats = LoadStats()
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            record = build_record(json.loads(line))
            if isinstance(record, Document):
                status = store.upsert_document(record)
            elif isinstance(record, ModuleRecord):
                status = store.upsert_module(record)
            else:
                status = store.upsert_workflow(record)
        except (ValueError, sqlite3.Error, MfsearchError) as exc:
            message = f"{source}:{number}: {exc}"
            LOGGER.warning("Skipping record %s", message)
            stats.errors.append(message)
            status = "failed"
        stats.increment(status)
    return stats


def load_files(store: SQLiteStore, paths: Sequence[Path]) -> LoadStats:
    total = LoadStats()
    for path in paths:
        LOGGER.info("Loading %s", path)
        with path.open(encoding="utf-8") as handle:
            stats = load_records(store, handle, source=str(path))
        total.inserted += stats.inserted
        total.updated += stats.updated
        total.failed += stats.failed
        total.errors.extend(stats.errors)
    return total
