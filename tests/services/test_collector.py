"""Collection through a fake driver."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from querydrift.errors import DriverLoadError, ProbeFailure
from querydrift.models.schema import CollectionCompleted, CollectionHalted
from querydrift.services.catalog_source import JsonCatalogSource
from querydrift.services.collector import collect_batch, collect_version
from querydrift.services.driver import QueryResult, connect_with_retry, load_driver_factory, normalize_error
from querydrift.services.serialization import checksum

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeDriver:
    def __init__(self, connect_failures=0, broken_collections=(), reject=()):
        self.connect_failures = connect_failures
        self.broken_collections = set(broken_collections)
        self.reject = list(reject)
        self.events = []
        self.collection = []

    def connect(self):
        self.events.append("connect")
        if self.connect_failures:
            self.connect_failures -= 1
            raise ConnectionError("connection refused")

    def disconnect(self):
        self.events.append("disconnect")

    def init_collection(self, name, indices=None, documents=None):
        self.events.append(f"init:{name}")
        if name in self.broken_collections:
            raise RuntimeError("duplicate key")
        self.collection = list(documents or [])

    def drop_collection(self, name):
        self.events.append(f"drop:{name}")
        self.collection = []

    def execute(self, query):
        if query in self.reject:
            return QueryResult(success=False, error={"errmsg": "unknown operator", "code": 2})
        limit = query.get("limit")
        return QueryResult(success=True, documents=self.collection[:limit] if limit else list(self.collection))


class Clock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def fixtures(tmp_path):
    directory = tmp_path / "fixtures"
    directory.mkdir()
    (directory / "comparison.json").write_text(
        json.dumps(
            {
                "operations": [{"limit": 1}, {"group": "all", "ops": [{"limit": 0}, {"bad": True}]}],
                "collection": {"indices": {"age": 1}, "records": [{"age": 30}, {"age": 41}]},
            }
        )
    )
    (directory / "logical.json").write_text(json.dumps({"operations": [{"limit": 2}]}))
    return directory


def test_collect_version_records_results_and_history(store, items, fixtures):
    driver = FakeDriver(reject=[{"bad": True}])

    summary = collect_version(store, "8.0.4", items, JsonCatalogSource(fixtures), driver, now_fn=Clock())

    assert summary.completed == ["comparison", "logical"]
    assert summary.halted == []
    assert driver.events == [
        "connect",
        "init:comparison",
        "drop:comparison",
        "init:logical",
        "drop:logical",
        "disconnect",
    ]

    rows = store.read_raw_results("8.0.4", "comparison")
    assert [r["operation"] for r in rows] == [{"limit": 1}, {"limit": 0}, {"bad": True}]
    assert rows[0]["documents"] == [{"age": 30}]
    assert rows[2]["error"] == {"message": "unknown operator", "code": 2}

    history = store.read_meta("8.0.4").history
    assert [type(r) for r in history] == [CollectionCompleted, CollectionCompleted]
    assert history[0].hash == "h-cmp-1"
    assert history[0].result_checksum == checksum(rows)


def test_nothing_pending_means_no_connection(store, items, fixtures):
    collect_version(store, "8.0.4", items, JsonCatalogSource(fixtures), FakeDriver(), now_fn=Clock())
    driver = FakeDriver()

    summary = collect_version(store, "8.0.4", items, JsonCatalogSource(fixtures), driver, now_fn=Clock())

    assert summary.completed == []
    assert driver.events == []


def test_one_broken_catalog_does_not_stop_the_version(store, items, fixtures):
    driver = FakeDriver(broken_collections={"comparison"})

    summary = collect_version(store, "8.0.4", items, JsonCatalogSource(fixtures), driver, now_fn=Clock())

    assert summary.halted == ["comparison"]
    assert summary.completed == ["logical"]
    assert "drop:comparison" not in driver.events
    halt = store.read_meta("8.0.4").history[0]
    assert isinstance(halt, CollectionHalted)
    assert halt.catalog == "comparison"
    assert halt.reason.startswith("fixture-load-failed")


def test_missing_fixture_halts_that_catalog(store, items, fixtures):
    (fixtures / "logical.json").unlink()

    summary = collect_version(store, "8.0.4", items, JsonCatalogSource(fixtures), FakeDriver(), now_fn=Clock())

    assert summary.halted == ["logical"]
    assert summary.completed == ["comparison"]


def test_connect_failure_halts_the_whole_version(store, items, fixtures):
    driver = FakeDriver(connect_failures=99)
    sleeps = []

    summary = collect_version(
        store,
        "8.0.4",
        items,
        JsonCatalogSource(fixtures),
        driver,
        now_fn=Clock(),
        connect_attempts=3,
        connect_delay_s=1.0,
        sleep=sleeps.append,
    )

    assert summary.reason.startswith("connect failed after 3 attempt(s)")
    assert sleeps == [1.0, 1.0]
    [halt] = store.read_meta("8.0.4").history
    assert halt.catalog is None


def test_corrupt_meta_is_not_overwritten(store, items, fixtures):
    path = store.version_dir("8.0.4") / "meta.json"
    path.parent.mkdir(parents=True)
    path.write_text("{oops")
    driver = FakeDriver()

    summary = collect_version(store, "8.0.4", items, JsonCatalogSource(fixtures), driver, now_fn=Clock())

    assert summary.reason.startswith("state-corrupt")
    assert driver.events == []
    assert path.read_text() == "{oops"


def test_batch_survives_a_failing_version(store, items, fixtures):
    def factory(version):
        if str(version) == "7.0.1":
            raise RuntimeError("no driver for 7.0")
        return FakeDriver()

    summaries = collect_batch(store, ["7.0.1", "8.0.4"], items, JsonCatalogSource(fixtures), factory, now_fn=Clock())

    assert summaries[0].reason == "driver-unavailable: no driver for 7.0"
    assert summaries[1].completed == ["comparison", "logical"]
    assert isinstance(store.read_meta("7.0.1").history[0], CollectionHalted)


def test_connect_with_retry_recovers():
    driver = FakeDriver(connect_failures=2)
    sleeps = []

    connect_with_retry(driver, attempts=10, delay_s=0.5, sleep=sleeps.append)

    assert driver.events == ["connect"] * 3
    assert sleeps == [0.5, 0.5]


def test_connect_with_retry_gives_up():
    with pytest.raises(ProbeFailure):
        connect_with_retry(FakeDriver(connect_failures=5), attempts=2, delay_s=0, sleep=lambda _: None)


def test_normalize_error_shapes():
    assert normalize_error(None) is None
    assert normalize_error({"errmsg": "bad", "codeName": "BadValue"}) == {"message": "bad", "code": "BadValue"}
    assert normalize_error(ValueError("boom")) == {"message": "boom", "type": "ValueError"}


def test_load_driver_factory():
    factory = load_driver_factory("querydrift.services.driver:QueryResult")
    assert factory is QueryResult
    with pytest.raises(DriverLoadError):
        load_driver_factory("no-colon")
    with pytest.raises(DriverLoadError):
        load_driver_factory("querydrift.nope:factory")
    with pytest.raises(DriverLoadError):
        load_driver_factory("querydrift.services.driver:MISSING")


class BytesDriver(FakeDriver):
    def execute(self, query):
        return QueryResult(success=True, documents=[{"_id": b"\x01\x02"}])


def test_unencodable_documents_halt_only_that_catalog(store, items, fixtures):
    summary = collect_version(store, "8.0.4", items, JsonCatalogSource(fixtures), BytesDriver(), now_fn=Clock())

    assert summary.completed == []
    assert summary.halted == ["comparison", "logical"]
    halts = store.read_meta("8.0.4").history
    assert [h.catalog for h in halts] == ["comparison", "logical"]
    assert all(h.reason.startswith("result-write-failed: TypeError") for h in halts)
    assert not (store.version_dir("8.0.4") / "comparison.json").exists()
    assert list(store.version_dir("8.0.4").glob(".comparison.json.*")) == []


@pytest.mark.parametrize(
    "content",
    [
        json.dumps({"operations": [{"title": {"$regex": "@RegExp:$regex/[^]/"}}]}).encode(),
        json.dumps({"operations": [{"since": {"$gt": "@Date:$gt/yesterday"}}]}).encode(),
        b'{"operations": ["\xff"]}',
    ],
)
def test_bad_fixture_halts_the_catalog_and_the_batch_goes_on(store, items, fixtures, content):
    (fixtures / "comparison.json").write_bytes(content)

    summaries = collect_batch(
        store, ["8.0.4", "8.0.5"], items, JsonCatalogSource(fixtures), lambda v: FakeDriver(), now_fn=Clock()
    )

    assert [s.name for s in summaries] == ["8.0.4", "8.0.5"]
    for summary in summaries:
        assert summary.halted == ["comparison"]
        assert summary.completed == ["logical"]
    halt = store.read_meta("8.0.4").history[0]
    assert halt.catalog == "comparison"
    assert halt.reason.startswith("fixture-load-failed")


def test_batch_goes_on_after_unencodable_documents(store, items, fixtures):
    def factory(version):
        return BytesDriver() if str(version) == "8.0.4" else FakeDriver()

    summaries = collect_batch(store, ["8.0.4", "8.0.5"], items, JsonCatalogSource(fixtures), factory, now_fn=Clock())

    assert summaries[0].halted == ["comparison", "logical"]
    assert summaries[1].completed == ["comparison", "logical"]


class ExplodingSource:
    def load(self, item):
        raise RuntimeError("fixture server went away")


def test_unexpected_error_is_recorded_and_the_batch_goes_on(store, items, fixtures):
    drivers = []

    def factory(version):
        drivers.append(FakeDriver())
        return drivers[-1]

    summaries = collect_batch(store, ["8.0.4", "8.0.5"], items, ExplodingSource(), factory, now_fn=Clock())

    assert [s.reason for s in summaries] == ["collection-aborted: RuntimeError: fixture server went away"] * 2
    assert all(d.events[-1] == "disconnect" for d in drivers)
    [halt] = store.read_meta("8.0.5").history
    assert halt.catalog is None
    assert halt.reason.startswith("collection-aborted")
