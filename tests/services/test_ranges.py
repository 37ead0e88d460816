"""Compressed version-range strings."""

import pytest

from querydrift.services.ranges import compress_ranges, expand_ranges
from querydrift.services.versions import VersionRegistry

KNOWN = ["4.2", "4.4", "4.3", "5.0", "4.9", "4.10", "5.1", "6.0"]


@pytest.fixture
def registry():
    return VersionRegistry(KNOWN)


def test_runs_span_adjacent_known_versions(registry):
    assert compress_ranges(["4.3", "4.2", "4.4"], registry) == "4.2..4.4"
    assert compress_ranges(["4.9", "4.10"], registry) == "4.9..4.10"
    assert compress_ranges(["4.2", "4.3", "4.4", "5.0"], registry) == "4.2..4.4,5.0"
    assert compress_ranges(["6.0"], registry) == "6.0"
    assert compress_ranges([], registry) == ""


def test_gap_in_known_sequence_splits_the_run(registry):
    # 4.10 is known but absent, so 4.9 and 5.0 are not a run
    assert compress_ranges(["4.9", "5.0", "5.1"], registry) == "4.9,5.0..5.1"


@pytest.mark.parametrize(
    "names",
    [
        ["4.2"],
        ["4.2", "4.3", "4.4", "5.0"],
        ["4.9", "4.10", "5.1"],
        ["4.2", "4.4", "4.10", "6.0"],
        KNOWN,
    ],
)
def test_round_trip(registry, names):
    text = compress_ranges(names, registry)
    assert expand_ranges(text, registry) == registry.sort(names)


def test_expand_is_canonical_not_lexical(registry):
    assert expand_ranges("4.9..5.0", registry) == ["4.9", "4.10", "5.0"]


def test_expand_rejects_descending_ranges(registry):
    with pytest.raises(ValueError):
        expand_ranges("5.0..4.2", registry)
