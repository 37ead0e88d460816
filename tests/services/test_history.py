"""History readers."""

from datetime import datetime, timedelta, timezone

from querydrift.models.schema import CollectionCompleted, CollectionHalted, VersionDiscovered, VersionRetracted
from querydrift.services.history import active_releases, combined_checksum, last_activity, latest_completed

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_combined_checksum_is_order_independent():
    assert combined_checksum({}) is None
    assert combined_checksum({"a": "1", "b": "2"}) == combined_checksum({"b": "2", "a": "1"})
    assert combined_checksum({"a": "1", "b": "2"}) != combined_checksum({"a": "2", "b": "1"})


def test_latest_completed_survives_later_halts():
    history = [
        CollectionCompleted(date=T0, catalog="a", hash="h", result_checksum="old"),
        CollectionCompleted(date=T0, catalog="a", hash="h2", result_checksum="new"),
        CollectionHalted(date=T0, catalog="a", reason="x"),
    ]
    assert latest_completed(history)["a"].result_checksum == "new"


def test_active_releases_replay():
    history = [
        VersionDiscovered(date=T0, name="8.0", digest="d1"),
        VersionDiscovered(date=T0, name="8.0.4", digest="d1"),
        VersionRetracted(date=T0, name="8.0"),
    ]
    assert active_releases(history) == ({"8.0.4"}, True)
    assert active_releases([]) == (set(), False)


def test_last_activity():
    history = [
        VersionDiscovered(date=T0 + timedelta(days=2), name="8.0.4", digest="d"),
        CollectionHalted(date=datetime(2024, 1, 5), reason="x"),
    ]
    assert last_activity(history) == datetime(2024, 1, 5, tzinfo=timezone.utc)
    assert last_activity([]) is None
