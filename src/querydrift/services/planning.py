"""
One planning pass: refresh plans, rank versions, pick the next batch.

Versions are processed one at a time; plans are idempotently recomputed, so
a pass can be interrupted and simply rerun.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from querydrift.errors import StateCorruption
from querydrift.models.domain import BatchSelection, CatalogItem, Version
from querydrift.models.schema import VersionMeta
from querydrift.repos.version_store import VersionStore, write_json_atomic
from querydrift.services.bisection import assign_family_priorities
from querydrift.services.equivalence import EquivalenceChecker
from querydrift.services.scheduler import select_batch
from querydrift.services.state import VersionState, build_state
from querydrift.services.versions import VersionRegistry, sort_key
from querydrift.services.work_planner import refresh_plan

logger = logging.getLogger(__name__)

WORKLOAD_FILE = "workload.json"


@dataclass(frozen=True)
class PlanningReport:
    selection: BatchSelection
    states: list[VersionState]
    priorities: dict[str, int]
    plans_written: int = 0
    corrupt: list[str] = field(default_factory=list)


def load_meta_or_empty(store: VersionStore, name: str) -> tuple[VersionMeta, bool]:
    """
    meta.json, or an empty stand-in when it cannot be read.

    The stand-in is never written back, so whatever completed work the
    original file still holds stays recoverable.
    """
    try:
        meta = store.read_meta(name)
    except StateCorruption as e:
        logger.warning("Treating %s as unprobed, meta.json unreadable: %s", name, e)
        return VersionMeta(name=name, version=str(Version.parse(name))), True
    if meta is None:
        return VersionMeta(name=name, version=str(Version.parse(name))), False
    return meta, False


def load_states(
    store: VersionStore,
    items: Sequence[CatalogItem],
    now: datetime,
    persist: bool = True,
) -> tuple[list[VersionState], int, list[str]]:
    states: list[VersionState] = []
    written = 0
    corrupt: list[str] = []
    for name in store.list_versions():
        meta, broken = load_meta_or_empty(store, name)
        if broken:
            corrupt.append(name)
        if persist:
            written += int(refresh_plan(store, name, items, meta.history, now=now).written)
        states.append(build_state(meta, items))
    return states, written, corrupt


def assign_priorities(states: Sequence[VersionState], registry: VersionRegistry) -> dict[str, int]:
    by_family: dict[str, list[VersionState]] = {}
    for state in states:
        by_family.setdefault(state.version.family, []).append(state)

    checker = EquivalenceChecker()
    priorities: dict[str, int] = {}
    for family in sorted(by_family, key=lambda f: Version.parse(f).key):
        members = sorted(by_family[family], key=lambda s: sort_key(registry.get(s.name)))
        priorities.update(assign_family_priorities(members, checker))
    return priorities


def run_planning_pass(
    store: VersionStore,
    items: Sequence[CatalogItem],
    batch_size: int,
    now: Optional[datetime] = None,
    persist: bool = True,
) -> PlanningReport:
    """`persist=False` ranks without touching plan.json (read-only callers)."""
    ts = now or datetime.now(timezone.utc)
    states, written, corrupt = load_states(store, items, ts, persist=persist)
    registry = VersionRegistry(s.name for s in states)
    priorities = assign_priorities(states, registry)
    selection = select_batch(states, priorities, batch_size, ts)

    logger.info(
        "Planned %d version(s), %d plan(s) updated, batch=%s mode=%s",
        len(states),
        written,
        ",".join(selection.versions) or "-",
        selection.mode,
    )
    return PlanningReport(
        selection=selection,
        states=states,
        priorities=priorities,
        plans_written=written,
        corrupt=corrupt,
    )


def write_workload(root: str | Path, report: PlanningReport, now: Optional[datetime] = None) -> Path:
    ts = now or datetime.now(timezone.utc)
    path = Path(root) / WORKLOAD_FILE
    write_json_atomic(
        path,
        {
            "date": ts.isoformat(),
            "mode": report.selection.mode,
            "versions": report.selection.versions,
            "entries": [
                {
                    "name": e.name,
                    "priority": e.priority,
                    "pending": e.pending,
                    "failing": e.failing,
                }
                for e in report.selection.entries
            ],
        },
    )
    return path
