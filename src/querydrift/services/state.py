from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from querydrift.models.domain import CatalogItem, Version
from querydrift.models.schema import VersionMeta
from querydrift.services.backoff import BackoffState, backoff_state
from querydrift.services.history import active_releases, combined_checksum, latest_completed
from querydrift.services.work_planner import pending_catalogs


@dataclass(frozen=True)
class VersionState:
    """Everything scheduling needs to know about one version."""

    name: str
    version: Version
    completed: dict[str, str] = field(default_factory=dict)  # catalog -> resultChecksum
    combined_checksum: Optional[str] = None
    pending: tuple[CatalogItem, ...] = ()
    backoff: BackoffState = field(default_factory=BackoffState)
    retracted: bool = False

    @property
    def has_pending(self) -> bool:
        return bool(self.pending)

    @property
    def failing(self) -> bool:
        return self.backoff.failing


def build_state(meta: VersionMeta, items: Sequence[CatalogItem]) -> VersionState:
    completed = {name: rec.result_checksum for name, rec in latest_completed(meta.history).items()}
    active, seen = active_releases(meta.history)
    return VersionState(
        name=meta.name,
        version=Version.parse(meta.name),
        completed=completed,
        combined_checksum=combined_checksum(completed),
        pending=tuple(pending_catalogs(items, meta.history)),
        backoff=backoff_state(meta.history),
        retracted=seen and not active,
    )
