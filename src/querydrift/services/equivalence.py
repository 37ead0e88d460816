"""Whole-version output equivalence."""

from __future__ import annotations

from querydrift.services.state import VersionState


def equivalent(a: VersionState, b: VersionState) -> bool:
    """
    True when two versions produced identical outputs for what both ran.

    Fast path: equal combined checksums. Fallback (either side has none
    cached): per-catalog comparison, where differing catalog sets or any
    checksum mismatch mean "not equivalent". A version without completed
    catalogs is only ever equivalent to itself.
    """
    if a is b or a.name == b.name:
        return True
    if not a.completed or not b.completed:
        return False

    if a.combined_checksum is not None and b.combined_checksum is not None:
        return a.combined_checksum == b.combined_checksum

    if len(a.completed) != len(b.completed):
        return False
    for catalog, checksum in a.completed.items():
        if b.completed.get(catalog) != checksum:
            return False
    return True


class EquivalenceChecker:
    """`equivalent` with memoized answers for one planning pass."""

    def __init__(self) -> None:
        self._cache: dict[tuple[str, str], bool] = {}

    def __call__(self, a: VersionState, b: VersionState) -> bool:
        key = (a.name, b.name) if a.name <= b.name else (b.name, a.name)
        if key not in self._cache:
            self._cache[key] = equivalent(a, b)
        return self._cache[key]
