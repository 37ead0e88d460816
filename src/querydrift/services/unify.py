"""
Cross-version report: for every probed operation, which versions produced
which outcome.

Outcomes are compared by content hash of their canonical serialization, not
by structural equality, because documents and errors may carry values
(dates, patterns) that only compare reliably once canonically encoded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from querydrift.errors import StateCorruption
from querydrift.models.schema import ProbeRecord, UnifiedEntry, UnifiedResult
from querydrift.repos.version_store import VersionStore, write_json_atomic
from querydrift.services.ranges import compress_ranges, min_version_key
from querydrift.services.serialization import checksum, serialize
from querydrift.services.versions import VersionRegistry, sort_key

logger = logging.getLogger(__name__)

UNIFIED_FILE = "unified.json"


@dataclass
class _Partition:
    outcome: dict
    versions: list[str] = field(default_factory=list)


def outcome_of(record: ProbeRecord) -> dict:
    """`{"error": ...}` when the probe errored, else `{"documents": [...]}`."""
    if record.error is not None:
        return {"error": record.error}
    return {"documents": list(record.documents or [])}


def outcome_key(outcome: dict) -> str:
    if "error" in outcome:
        return checksum({"error": outcome["error"]})
    docs = sorted(outcome["documents"], key=serialize)
    return checksum({"documents": docs})


def collect_observations(store: VersionStore, names: list[str]) -> list[tuple[str, str, ProbeRecord]]:
    out: list[tuple[str, str, ProbeRecord]] = []
    for name in names:
        for catalog in store.result_catalogs(name):
            try:
                records = store.read_results(name, catalog)
            except StateCorruption as e:
                logger.warning("Skipping unreadable results %s/%s: %s", name, catalog, e)
                continue
            out.extend((name, catalog, r) for r in records)
    return out


def unify_observations(
    observations: list[tuple[str, str, ProbeRecord]],
    registry: VersionRegistry,
) -> list[UnifiedEntry]:
    grouped: dict[tuple[str, str], dict[str, _Partition]] = {}
    operations: dict[tuple[str, str], Any] = {}

    # lowest version first, so each partition reports its earliest outcome
    ordered = sorted(observations, key=lambda o: sort_key(registry.get(o[0])))
    for version, catalog, record in ordered:
        op_key = serialize(record.operation)
        outcome = outcome_of(record)
        partitions = grouped.setdefault((catalog, op_key), {})
        operations.setdefault((catalog, op_key), record.operation)
        partition = partitions.setdefault(outcome_key(outcome), _Partition(outcome=outcome))
        if version not in partition.versions:
            partition.versions.append(version)

    entries: list[UnifiedEntry] = []
    for (catalog, op_key) in sorted(grouped):
        results = [
            UnifiedResult(**p.outcome, versions=compress_ranges(p.versions, registry))
            for p in grouped[(catalog, op_key)].values()
        ]
        results.sort(key=lambda r: min_version_key(r.versions, registry))
        entries.append(UnifiedEntry(catalog=catalog, operation=operations[(catalog, op_key)], results=results))
    return entries


def unify(store: VersionStore, registry: Optional[VersionRegistry] = None) -> list[UnifiedEntry]:
    names = store.list_versions()
    registry = registry or VersionRegistry(names)
    observations = collect_observations(store, names)
    logger.info("Loaded %d operation result(s) from %d version(s)", len(observations), len(names))
    entries = unify_observations(observations, registry)
    logger.info("Grouped into %d unique operation(s)", len(entries))
    return entries


def entry_to_json(entry: UnifiedEntry) -> dict:
    results = []
    for r in entry.results:
        row: dict[str, Any] = {"error": r.error} if r.error is not None else {"documents": r.documents or []}
        row["versions"] = r.versions
        results.append(row)
    return {"catalog": entry.catalog, "operation": entry.operation, "results": results}


def write_unified(entries: list[UnifiedEntry], path: str | Path) -> Path:
    out = Path(path)
    write_json_atomic(out, [entry_to_json(e) for e in entries])
    return out
