"""File-backed store: one directory per resolved version."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from querydrift.errors import StateCorruption
from querydrift.models.domain import ProbeOutcome, Version
from querydrift.models.schema import HistoryRecord, PlanFile, ProbeRecord, VersionMeta
from querydrift.services.serialization import encode

logger = logging.getLogger(__name__)

META_FILE = "meta.json"
PLAN_FILE = "plan.json"
RESERVED_FILES = {META_FILE, PLAN_FILE}


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON next to `path` and rename over it (no torn files)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent="\t", ensure_ascii=False)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StateCorruption(f"{path}: {type(e).__name__}: {e}") from e


class VersionStore:
    """
    Repository for the `collect/` tree.

    Layout:
        <root>/collect/v<major>/<name>/meta.json
        <root>/collect/v<major>/<name>/plan.json
        <root>/collect/v<major>/<name>/<catalog>.json

    Every write replaces a whole file atomically, and each version directory
    is touched by one caller at a time, so a run can be aborted between
    versions without leaving partial state behind.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    @property
    def collect_dir(self) -> Path:
        return self.root / "collect"

    def version_dir(self, name: str) -> Path:
        version = Version.parse(name)
        return self.collect_dir / f"v{version.major}" / name

    def list_versions(self) -> list[str]:
        """Names of every version directory holding a meta.json."""
        if not self.collect_dir.exists():
            return []
        names: list[str] = []
        for major_dir in sorted(self.collect_dir.iterdir()):
            if not major_dir.is_dir() or not major_dir.name.startswith("v"):
                continue
            for version_dir in sorted(major_dir.iterdir()):
                if not version_dir.is_dir() or not (version_dir / META_FILE).exists():
                    continue
                if Version.is_version_string(version_dir.name):
                    names.append(version_dir.name)
        return names

    # meta.json

    def read_raw_meta(self, name: str) -> Optional[dict]:
        path = self.version_dir(name) / META_FILE
        if not path.exists():
            return None
        data = _read_json(path)
        if not isinstance(data, dict):
            raise StateCorruption(f"{path}: expected an object, got {type(data).__name__}")
        return data

    def read_meta(self, name: str) -> Optional[VersionMeta]:
        data = self.read_raw_meta(name)
        if data is None:
            return None
        try:
            return VersionMeta.model_validate(data)
        except ValidationError as e:
            raise StateCorruption(f"{name}/{META_FILE}: {e.error_count()} validation error(s)") from e

    def write_meta(self, meta: VersionMeta) -> None:
        path = self.version_dir(meta.name) / META_FILE
        write_json_atomic(path, meta.model_dump(mode="json", by_alias=True, exclude_none=True))

    def append_history(self, name: str, *records: HistoryRecord) -> VersionMeta:
        """Read-modify-write: history is only ever appended to."""
        meta = self.read_meta(name)
        if meta is None:
            meta = VersionMeta(name=name, version=str(Version.parse(name)))
        meta.history.extend(records)
        self.write_meta(meta)
        return meta

    # plan.json

    def read_plan(self, name: str) -> Optional[PlanFile]:
        path = self.version_dir(name) / PLAN_FILE
        if not path.exists():
            return None
        data = _read_json(path)
        try:
            return PlanFile.model_validate(data)
        except ValidationError as e:
            raise StateCorruption(f"{name}/{PLAN_FILE}: {e.error_count()} validation error(s)") from e

    def write_plan(self, name: str, plan: PlanFile) -> None:
        write_json_atomic(self.version_dir(name) / PLAN_FILE, plan.model_dump(mode="json", exclude_none=True))

    # <catalog>.json

    def result_catalogs(self, name: str) -> list[str]:
        directory = self.version_dir(name)
        if not directory.exists():
            return []
        return sorted(
            p.stem
            for p in directory.iterdir()
            if p.is_file() and p.suffix == ".json" and p.name not in RESERVED_FILES
        )

    def read_results(self, name: str, catalog: str) -> list[ProbeRecord]:
        path = self.version_dir(name) / f"{catalog}.json"
        data = _read_json(path)
        if not isinstance(data, list):
            raise StateCorruption(f"{path}: expected an array, got {type(data).__name__}")
        try:
            return [ProbeRecord.model_validate(row) for row in data]
        except ValidationError as e:
            raise StateCorruption(f"{path}: {e.error_count()} validation error(s)") from e

    def read_raw_results(self, name: str, catalog: str) -> Any:
        return _read_json(self.version_dir(name) / f"{catalog}.json")

    def write_results(self, name: str, catalog: str, outcomes: Iterable[ProbeOutcome]) -> list[dict]:
        rows: list[dict] = []
        for o in outcomes:
            row: dict[str, Any] = {"id": o.id, "operation": encode(o.operation)}
            if o.error is not None:
                row["error"] = encode(o.error)
            else:
                row["documents"] = encode(list(o.documents or []))
            rows.append(row)
        write_json_atomic(self.version_dir(name) / f"{catalog}.json", rows)
        logger.debug("Wrote %d outcomes to %s/%s.json", len(rows), name, catalog)
        return rows
