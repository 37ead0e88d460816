"""Catalog item provider (catalog-queries.json)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

from pydantic import ValidationError

from querydrift.errors import QuerydriftError
from querydrift.models.domain import CatalogItem
from querydrift.models.schema import CatalogFileRecord

CATALOG_FILE = "catalog-queries.json"


class CatalogRepository:
    """
    Read-only access to the catalog generator's output.

    Each file record lists its exports; every export is one probe set, named
    after the export, whose `hash` changes whenever its definition changes.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @classmethod
    def in_automation(cls, automation_dir: str | Path) -> "CatalogRepository":
        return cls(Path(automation_dir) / CATALOG_FILE)

    def load_records(self) -> List[CatalogFileRecord]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise QuerydriftError(f"Catalog file not found: {self.path}") from e
        except json.JSONDecodeError as e:
            raise QuerydriftError(f"Catalog file is not valid JSON: {self.path}: {e}") from e
        if not isinstance(data, list):
            raise QuerydriftError(f"Catalog file must hold an array: {self.path}")
        try:
            return [CatalogFileRecord.model_validate(row) for row in data]
        except ValidationError as e:
            raise QuerydriftError(f"Catalog file has invalid records: {self.path}: {e}") from e

    def list_items(self) -> List[CatalogItem]:
        items: dict[str, CatalogItem] = {}
        for record in self.load_records():
            for export in record.exports:
                # later records win on duplicate export names
                items[export.name] = CatalogItem(name=export.name, path=record.path, hash=export.hash)
        return [items[name] for name in sorted(items)]
