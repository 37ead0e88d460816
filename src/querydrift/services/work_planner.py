"""Outstanding work per version."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from querydrift.errors import StateCorruption
from querydrift.models.domain import CatalogItem, Version
from querydrift.models.schema import (
    CatalogEntry,
    CollectionCompleted,
    CollectionHalted,
    HistoryRecord,
    PlanFile,
)
from querydrift.repos.version_store import VersionStore
from querydrift.services.history import latest_by_catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanRefresh:
    plan: PlanFile
    written: bool


def pending_catalogs(items: Sequence[CatalogItem], history: Iterable[HistoryRecord]) -> list[CatalogItem]:
    """
    Catalog items that still need a probe.

    Pending when the item was never mentioned, its latest record is a halt
    (retry), or its latest completion ran against an older definition.
    """
    latest = latest_by_catalog(history)
    out: list[CatalogItem] = []
    for item in items:
        record = latest.get(item.name)
        match record:
            case CollectionCompleted(hash=h) if h == item.hash:
                continue
            case CollectionCompleted() | CollectionHalted() | None:
                out.append(item)
    return out


def _signature(entries: Iterable[CatalogEntry | CatalogItem]) -> Counter:
    return Counter((e.name, e.hash) for e in entries)


def refresh_plan(
    store: VersionStore,
    name: str,
    items: Sequence[CatalogItem],
    history: Iterable[HistoryRecord],
    now: Optional[datetime] = None,
) -> PlanRefresh:
    """
    Recompute the plan for one version and persist it only if it changed.

    Change = different (catalog name, hash) multiset. A plan.json that cannot
    be read counts as absent and is rebuilt from history.
    """
    ts = now or datetime.now(timezone.utc)
    pending = pending_catalogs(items, history)

    try:
        previous = store.read_plan(name)
    except StateCorruption as e:
        logger.warning("Discarding unreadable plan for %s: %s", name, e)
        previous = None

    if previous is not None and _signature(previous.catalogs) == _signature(pending):
        return PlanRefresh(plan=previous, written=False)

    plan = PlanFile(
        version=str(Version.parse(name)),
        name=name,
        catalogs=[CatalogEntry.from_item(i) for i in pending],
        created=previous.created if previous is not None else ts,
        updated=ts,
    )
    store.write_plan(name, plan)
    logger.debug("Plan for %s now holds %d catalog(s)", name, len(pending))
    return PlanRefresh(plan=plan, written=True)
