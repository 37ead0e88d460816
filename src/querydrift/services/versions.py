"""Request-scoped version registry."""

from __future__ import annotations

from typing import Iterable

from querydrift.errors import InvalidVersionError
from querydrift.models.domain import Version


def sort_key(version: Version) -> tuple:
    # "4.2" and "4.2.0" share an ordering key; shorter spellings sort first
    parts = sum(1 for p in (version.minor, version.patch) if p is not None)
    return (version.key, parts)


class VersionRegistry:
    """
    Canonical identity + order for every version known to one run.

    Built once from the full discovered version set and passed to whoever
    needs canonical comparisons (planner, bisection, unifier). Nothing is
    cached at module level, so two registries never share state.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self._by_name: dict[str, Version] = {}
        for name in names:
            version = Version.parse(name)
            self._by_name.setdefault(str(version), version)
        self._ordered = sorted(self._by_name.values(), key=sort_key)
        self._index = {str(v): i for i, v in enumerate(self._ordered)}

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, name: object) -> bool:
        if not Version.is_version_string(name):
            return False
        return str(Version.parse(str(name))) in self._index

    @property
    def ordered(self) -> list[Version]:
        return list(self._ordered)

    def get(self, name: str) -> Version:
        key = str(Version.parse(name))
        try:
            return self._by_name[key]
        except KeyError:
            raise InvalidVersionError(f"Unknown version {name!r}") from None

    def index_of(self, name: str) -> int:
        return self._index[str(self.get(name))]

    def sort(self, names: Iterable[str]) -> list[str]:
        """Canonical (numeric) order, e.g. 4.9 before 4.10."""
        return sorted(set(names), key=lambda n: sort_key(Version.parse(n)))

    def families(self) -> dict[str, list[Version]]:
        """Group by `major.minor`, each family ascending."""
        out: dict[str, list[Version]] = {}
        for version in self._ordered:
            out.setdefault(version.family, []).append(version)
        return out
