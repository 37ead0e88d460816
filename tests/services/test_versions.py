"""Version parsing, ordering and the per-run registry."""

import pytest

from querydrift.errors import InvalidVersionError
from querydrift.models.domain import Version
from querydrift.services.versions import VersionRegistry


def test_parse_full_partial_and_rc():
    v = Version.parse("8.0.4")
    assert (v.major, v.minor, v.patch, v.build) == (8, 0, 4, None)

    partial = Version.parse("v4.2")
    assert (partial.major, partial.minor, partial.patch) == (4, 2, None)
    assert str(partial) == "4.2"

    rc = Version.parse("7.0.0-rc3")
    assert rc.build == "rc3"
    assert str(rc) == "7.0.0"
    assert rc.family == "7.0"


def test_parse_rejects_non_versions():
    with pytest.raises(InvalidVersionError):
        Version.parse("latest")
    # still usable where a ValueError is expected
    with pytest.raises(ValueError):
        Version.parse("windowsservercore")
    assert not Version.is_version_string("focal")
    assert Version.is_version_string("6.0.13")


def test_ordering_is_numeric_not_lexical():
    assert Version.parse("4.9") < Version.parse("4.10")
    assert Version.parse("4.2") == Version.parse("4.2.0")
    assert Version.parse("8.0.0-rc1") == Version.parse("8.0.0")
    assert sorted(Version.parse(t) for t in ["5.0", "4.10", "4.9"])[0] == Version.parse("4.9")


def test_registry_orders_and_groups_families():
    registry = VersionRegistry(["4.10", "4.2", "4.9", "5.0.1", "5.0.0"])

    assert [str(v) for v in registry.ordered] == ["4.2", "4.9", "4.10", "5.0.0", "5.0.1"]
    assert registry.sort(["5.0.1", "4.10", "4.9"]) == ["4.9", "4.10", "5.0.1"]
    assert registry.index_of("4.10") == 2
    assert "4.9" in registry
    assert "6.0" not in registry
    assert "latest" not in registry

    families = registry.families()
    assert [str(v) for v in families["5.0"]] == ["5.0.0", "5.0.1"]
    assert set(families) == {"4.2", "4.9", "4.10", "5.0"}


def test_registry_get_unknown_version():
    registry = VersionRegistry(["8.0.0"])
    assert registry.get("8.0.0") is registry.get("v8.0.0")
    with pytest.raises(InvalidVersionError):
        registry.get("8.0.1")
