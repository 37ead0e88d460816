"""
One-time conversion of the legacy catalog-array meta.json.

Legacy files carry a `catalog` array (one entry per catalog with
`completed` / `failed` / `resultChecksum`) plus grouped `INITIAL` / `UPDATE`
/ `SKIP` history entries. They become a flat, date-sorted history:

    ADDED action        -> version-discovered
    REMOVED action      -> version-retracted
    SKIP entry          -> collection-halted (version level)
    completed catalog   -> collection-completed

A completed catalog without `resultChecksum` gets one computed from its
result file; when that file is gone the entry is dropped (it will simply be
probed again).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from querydrift.errors import StateCorruption
from querydrift.models.schema import (
    CollectionCompleted,
    CollectionHalted,
    HistoryRecord,
    Release,
    VersionDiscovered,
    VersionMeta,
    VersionRetracted,
)
from querydrift.repos.version_store import VersionStore
from querydrift.services.history import as_utc
from querydrift.services.serialization import checksum

logger = logging.getLogger(__name__)

DEFAULT_SKIP_REASON = "mongodb-start-failed"


@dataclass
class MigrationReport:
    migrated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


def is_legacy(raw: dict) -> bool:
    return "catalog" in raw and isinstance(raw.get("catalog"), list)


def _date(value: Any) -> datetime:
    """Legacy dates are ISO strings or epoch milliseconds."""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str) and value:
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    raise ValueError(f"Unusable date {value!r}")


def convert_history_entry(entry: dict) -> list[HistoryRecord]:
    kind = entry.get("type")
    records: list[HistoryRecord] = []
    if kind in ("INITIAL", "UPDATE"):
        for action in entry.get("actions") or []:
            when = _date(action.get("date") or entry.get("date"))
            if action.get("type") == "ADDED" and action.get("name") and action.get("digest"):
                records.append(VersionDiscovered(date=when, name=action["name"], digest=action["digest"]))
            elif action.get("type") == "REMOVED" and action.get("name"):
                records.append(VersionRetracted(date=when, name=action["name"]))
            # UPDATED actions carry no lifecycle change
    elif kind == "SKIP":
        actions = entry.get("actions") or []
        reason = (actions[0].get("reason") if actions else None) or DEFAULT_SKIP_REASON
        records.append(CollectionHalted(date=_date(entry.get("date")), reason=reason))
    return records


def convert_catalog_entries(store: VersionStore, name: str, catalog: list[dict]) -> list[HistoryRecord]:
    records: list[HistoryRecord] = []
    for entry in catalog:
        if not entry.get("completed"):
            continue
        result_checksum = entry.get("resultChecksum")
        if not result_checksum:
            try:
                result_checksum = checksum(store.read_raw_results(name, entry["name"]))
            except StateCorruption as e:
                logger.warning("%s/%s: no result file to backfill a checksum from (%s), dropping", name, entry["name"], e)
                continue
        records.append(
            CollectionCompleted(
                date=_date(entry["completed"]),
                catalog=entry["name"],
                hash=entry.get("hash", ""),
                result_checksum=result_checksum,
            )
        )
    return records


def migrate_meta(store: VersionStore, raw: dict) -> VersionMeta:
    name = raw["name"]
    history: list[HistoryRecord] = []
    for entry in raw.get("history") or []:
        history.extend(convert_history_entry(entry))
    history.extend(convert_catalog_entries(store, name, raw.get("catalog") or []))
    history.sort(key=lambda r: as_utc(r.date))

    return VersionMeta(
        name=name,
        version=raw.get("version") or name,
        releases=[Release.model_validate(r) for r in raw.get("releases") or []],
        history=history,
    )


def migrate_store(store: VersionStore, dry_run: bool = False) -> MigrationReport:
    report = MigrationReport()
    for name in store.list_versions():
        try:
            raw: Optional[dict] = store.read_raw_meta(name)
            if raw is None or not is_legacy(raw):
                report.skipped.append(name)
                continue
            meta = migrate_meta(store, raw)
        except (StateCorruption, ValidationError, ValueError, KeyError) as e:
            logger.error("Error migrating %s: %s", name, e)
            report.errors[name] = f"{type(e).__name__}: {e}"
            continue

        if not dry_run:
            store.write_meta(meta)
        logger.info(
            "%s %s: %d record(s)",
            "[DRY-RUN] Would migrate" if dry_run else "Migrated",
            name,
            len(meta.history),
        )
        report.migrated.append(name)
    return report
