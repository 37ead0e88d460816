"""One-time conversion of legacy meta.json files."""

import json
from datetime import datetime, timezone

from querydrift.models.schema import CollectionCompleted, CollectionHalted, VersionDiscovered
from querydrift.repos.version_store import write_json_atomic
from querydrift.services.migration import is_legacy, migrate_store
from querydrift.services.serialization import checksum

LEGACY = {
    "name": "4.4.1",
    "version": "4.4.1",
    "releases": [{"name": "4.4.1", "version": "4.4.1", "digest": "sha256:a", "image": "mongo:4.4.1"}],
    "catalog": [
        {"name": "comparison", "hash": "h1", "completed": "2023-05-01T00:00:00.000Z", "resultChecksum": "r1"},
        {"name": "logical", "hash": "h2", "completed": 1682899200000},
        {"name": "geo", "hash": "h3", "completed": "2023-05-02T00:00:00Z"},
        {"name": "text", "hash": "h4"},
    ],
    "history": [
        {"type": "INITIAL", "date": "2023-04-01T00:00:00Z", "actions": [{"type": "ADDED", "name": "4.4.1", "digest": "sha256:a"}]},
        {"type": "UPDATE", "date": "2023-04-10T00:00:00Z", "actions": [{"type": "UPDATED", "name": "4.4.1"}]},
        {"type": "SKIP", "date": "2023-04-15T00:00:00Z", "actions": [{"reason": "mongodb-start-failed"}]},
    ],
}
LOGICAL_ROWS = [{"id": "abc", "operation": {"filter": {}}, "documents": []}]


def _seed_legacy(store, raw=LEGACY):
    directory = store.version_dir(raw["name"])
    write_json_atomic(directory / "meta.json", raw)
    write_json_atomic(directory / "logical.json", LOGICAL_ROWS)
    return directory / "meta.json"


def test_is_legacy():
    assert is_legacy(LEGACY)
    assert not is_legacy({"name": "4.4.1", "version": "4.4.1", "history": []})


def test_migrate_converts_and_backfills(store):
    _seed_legacy(store)

    report = migrate_store(store)

    assert report.migrated == ["4.4.1"]
    meta = store.read_meta("4.4.1")
    assert [type(r) for r in meta.history] == [VersionDiscovered, CollectionHalted, CollectionCompleted, CollectionCompleted]
    assert meta.history[1].catalog is None
    assert meta.history[1].reason == "mongodb-start-failed"

    completed = {r.catalog: r for r in meta.history if isinstance(r, CollectionCompleted)}
    assert set(completed) == {"comparison", "logical"}
    assert completed["comparison"].result_checksum == "r1"
    assert completed["logical"].result_checksum == checksum(LOGICAL_ROWS)
    assert completed["logical"].date == datetime(2023, 5, 1, tzinfo=timezone.utc)
    assert meta.releases[0].model_extra == {"image": "mongo:4.4.1"}

    assert migrate_store(store).skipped == ["4.4.1"]


def test_dry_run_writes_nothing(store):
    path = _seed_legacy(store)
    before = path.read_text()

    report = migrate_store(store, dry_run=True)

    assert report.migrated == ["4.4.1"]
    assert path.read_text() == before


def test_broken_legacy_file_is_reported(store):
    raw = {"name": "4.4.2", "catalog": [{"completed": "2023-05-01T00:00:00Z"}]}
    path = _seed_legacy(store, raw)

    report = migrate_store(store)

    assert "4.4.2" in report.errors
    assert json.loads(path.read_text()) == raw
