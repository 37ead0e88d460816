from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from querydrift.errors import InvalidVersionError

VERSION_PATTERN = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[.-](.+))?")


@dataclass(frozen=True, eq=False)
class Version:
    """
    A server version such as `8.0.4`, `4.2` or `7.0.0-rc3`.

    Ordering compares major, then minor (absent == 0), then patch
    (absent == 0). The build tag is informational only: it takes no part in
    ordering, equality or the canonical string.
    """

    text: str
    major: int
    minor: Optional[int] = None
    patch: Optional[int] = None
    build: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "Version":
        match = VERSION_PATTERN.match(str(text).strip())
        if not match:
            raise InvalidVersionError(f'Invalid Version; "{text}"')
        major, minor, patch, build = match.groups()
        return cls(
            text=str(text).strip(),
            major=int(major),
            minor=int(minor) if minor else None,
            patch=int(patch) if patch else None,
            build=build or None,
        )

    @staticmethod
    def is_version_string(value: object) -> bool:
        return isinstance(value, str) and VERSION_PATTERN.match(value) is not None

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.major, self.minor or 0, self.patch or 0)

    @property
    def family(self) -> str:
        return f"{self.major}.{self.minor or 0}"

    def __str__(self) -> str:
        parts = [p for p in (self.major, self.minor, self.patch) if p is not None]
        return ".".join(str(p) for p in parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __lt__(self, other: "Version") -> bool:
        return self.key < other.key

    def __le__(self, other: "Version") -> bool:
        return self.key <= other.key

    def __gt__(self, other: "Version") -> bool:
        return self.key > other.key

    def __ge__(self, other: "Version") -> bool:
        return self.key >= other.key


@dataclass(frozen=True)
class CatalogItem:
    """One probe set: a named group of operations plus its fixture."""

    name: str
    path: str
    hash: str


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of one operation against one version."""

    id: str
    operation: object
    documents: Optional[list] = None
    error: Optional[dict] = None


@dataclass(frozen=True)
class PriorityEntry:
    name: str
    version: Version
    priority: int
    pending: int
    failing: bool
    eligible: bool


@dataclass(frozen=True)
class BatchSelection:
    versions: list[str]
    mode: str
    entries: list[PriorityEntry] = field(default_factory=list)


@dataclass(frozen=True)
class CollectSummary:
    name: str
    completed: list[str]
    halted: list[str]
    reason: Optional[str] = None
    finished_at: Optional[datetime] = None
