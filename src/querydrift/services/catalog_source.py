"""Probe definitions (operations + fixture) for catalog items."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from querydrift.errors import ProbeFailure
from querydrift.models.domain import CatalogItem
from querydrift.services.serialization import revive


@dataclass(frozen=True)
class CatalogDefinition:
    operations: list[Any]
    indices: list[Any] = field(default_factory=list)
    records: list[dict] = field(default_factory=list)


class CatalogSource(Protocol):
    def load(self, item: CatalogItem) -> CatalogDefinition: ...


def flatten_operations(operations: list[Any]) -> list[Any]:
    """`{group, ops}` entries expand in place; plain operations pass through."""
    out: list[Any] = []
    for op in operations:
        if isinstance(op, dict) and set(op) == {"group", "ops"} and isinstance(op["ops"], list):
            out.extend(op["ops"])
        else:
            out.append(op)
    return out


def _indices(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, dict):
        return [{k: v} for k, v in raw.items()]
    return list(raw)


class JsonCatalogSource:
    """
    Reads fixtures written by the catalog generator:
    `<fixtures_dir>/<name>.json` = `{operations, collection: {indices, records}}`.
    """

    def __init__(self, fixtures_dir: str | Path):
        self.fixtures_dir = Path(fixtures_dir)

    def load(self, item: CatalogItem) -> CatalogDefinition:
        path = self.fixtures_dir / f"{item.name}.json"
        try:
            data = revive(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, re.error, ValueError) as e:
            # JS-only patterns and malformed dates fail here, not mid-probe
            raise ProbeFailure(f"fixture-load-failed: {item.name}: {type(e).__name__}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("operations"), list):
            raise ProbeFailure(f"fixture-load-failed: {item.name}: no operations")

        collection = data.get("collection") or {}
        if not isinstance(collection, dict):
            raise ProbeFailure(f"fixture-load-failed: {item.name}: collection is not an object")
        records = collection.get("records") or []
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ProbeFailure(f"fixture-load-failed: {item.name}: records must be a list of objects")
        try:
            indices = _indices(collection.get("indices"))
        except TypeError as e:
            raise ProbeFailure(f"fixture-load-failed: {item.name}: bad indices: {e}") from e
        return CatalogDefinition(
            operations=flatten_operations(data["operations"]),
            indices=indices,
            records=list(records),
        )
