"""Pure readers over a version's history records."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

from querydrift.models.schema import (
    CollectionCompleted,
    CollectionHalted,
    HistoryRecord,
    VersionDiscovered,
    VersionRetracted,
)

CatalogRecord = Union[CollectionCompleted, CollectionHalted]


def as_utc(value: datetime) -> datetime:
    """Naive datetimes in history files are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def latest_by_catalog(history: Iterable[HistoryRecord]) -> dict[str, CatalogRecord]:
    """
    Most recent record mentioning each catalog (append order is the truth).

    Version-level halts (no catalog) and lifecycle records mention no catalog.
    """
    out: dict[str, CatalogRecord] = {}
    for record in history:
        match record:
            case CollectionCompleted(catalog=catalog):
                out[catalog] = record
            case CollectionHalted(catalog=catalog) if catalog is not None:
                out[catalog] = record
            case CollectionHalted() | VersionDiscovered() | VersionRetracted():
                pass
    return out


def latest_completed(history: Iterable[HistoryRecord]) -> dict[str, CollectionCompleted]:
    """Latest `collection-completed` per catalog, even if a halt followed it."""
    out: dict[str, CollectionCompleted] = {}
    for record in history:
        match record:
            case CollectionCompleted(catalog=catalog):
                out[catalog] = record
            case CollectionHalted() | VersionDiscovered() | VersionRetracted():
                pass
    return out


def combined_checksum(completed: dict[str, str]) -> Optional[str]:
    """
    Hash over the sorted `catalog:resultChecksum` pairs.

    `completed` maps catalog name to result checksum. None when nothing has
    been completed yet.
    """
    if not completed:
        return None
    pairs = sorted(f"{name}:{checksum}" for name, checksum in completed.items())
    return hashlib.sha256("|".join(pairs).encode("utf-8")).hexdigest()


def active_releases(history: Iterable[HistoryRecord]) -> tuple[set[str], bool]:
    """
    Replay lifecycle events.

    Returns the release names currently discovered and whether any lifecycle
    event was seen at all (a version with events but no active release has
    been fully retracted).
    """
    active: set[str] = set()
    seen = False
    for record in history:
        match record:
            case VersionDiscovered(name=name):
                active.add(name)
                seen = True
            case VersionRetracted(name=name):
                active.discard(name)
                seen = True
            case CollectionCompleted() | CollectionHalted():
                pass
    return active, seen


def last_activity(history: Iterable[HistoryRecord]) -> Optional[datetime]:
    dates = [as_utc(r.date) for r in history]
    return max(dates) if dates else None
