"""
Release discovery: turn registry tags into versions and lifecycle events.

Only stable releases and release candidates (`-rcN`) are kept. Tags are
grouped per release: `7.0.0-rc1` belongs to `7.0.0`, and a partial tag such
as `7.0` that shares a digest with `7.0.4` refers to that release.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from querydrift.clients.docker_hub import DockerTag
from querydrift.errors import StateCorruption
from querydrift.models.domain import Version
from querydrift.models.schema import Release, VersionDiscovered, VersionMeta, VersionRetracted
from querydrift.repos.version_store import VersionStore
from querydrift.services.history import active_releases

logger = logging.getLogger(__name__)

RC_BUILD = re.compile(r"^rc\d+$")


@dataclass(frozen=True)
class ReleaseTag:
    name: str
    version: Version
    digest: Optional[str]
    released: Optional[datetime]


@dataclass
class ReleaseBundle:
    name: str
    version: Version
    releases: list[ReleaseTag] = field(default_factory=list)


@dataclass(frozen=True)
class SyncResult:
    created: list[str]
    discovered: int
    retracted: int


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _specificity(version: Version) -> int:
    return sum(1 for p in (version.minor, version.patch) if p is not None)


def build_release_bundles(tags: Iterable[DockerTag], os: str = "linux", arch: str = "amd64") -> list[ReleaseBundle]:
    releases: list[ReleaseTag] = []
    for tag in tags:
        if not tag.v2 or not Version.is_version_string(tag.name) or not tag.has_platform(os, arch):
            continue
        version = Version.parse(tag.name)
        if version.build and not RC_BUILD.match(version.build):
            continue
        releases.append(
            ReleaseTag(
                name=tag.name,
                version=version,
                digest=tag.digest or tag.image_digest(os, arch),
                released=_parse_date(tag.last_updated),
            )
        )

    # full versions first so partial tags can attach to them by digest
    releases.sort(key=lambda r: (-_specificity(r.version), r.version.key, r.name))

    bundles: list[ReleaseBundle] = []
    for release in releases:
        name = str(release.version)
        found = next(
            (
                b for b in bundles
                if b.name == name
                or (release.digest and any(r.digest == release.digest for r in b.releases))
            ),
            None,
        )
        if found is None:
            found = ReleaseBundle(name=name, version=release.version)
            bundles.append(found)
        if not any(r.name == release.name for r in found.releases):
            found.releases.append(release)

    bundles.sort(key=lambda b: b.version.key)
    return bundles


def _release_model(tag: ReleaseTag) -> Release:
    return Release(name=tag.name, version=str(tag.version), digest=tag.digest, released=tag.released)


def sync_bundle(store: VersionStore, bundle: ReleaseBundle, now: datetime) -> tuple[bool, int, int]:
    """Returns (created, discovered, retracted) for one release."""
    meta = store.read_meta(bundle.name)
    created = meta is None
    if meta is None:
        meta = VersionMeta(name=bundle.name, version=str(bundle.version))

    known = {r.name: r for r in meta.releases}
    incoming = {r.name: r for r in bundle.releases}
    added = [n for n in incoming if n not in known]
    removed = [n for n in known if n not in incoming]
    replaced = [_release_model(incoming[n]) for n in sorted(incoming)]
    changed = [r.model_dump() for r in replaced] != [r.model_dump() for r in sorted(meta.releases, key=lambda r: r.name)]

    for n in removed:
        meta.history.append(VersionRetracted(date=now, name=n))
    for n in added:
        meta.history.append(VersionDiscovered(date=now, name=n, digest=incoming[n].digest or ""))

    if created or added or removed or changed:
        meta.releases = replaced
        store.write_meta(meta)
    return created, len(added), len(removed)


def retract_missing(store: VersionStore, seen: set[str], now: datetime) -> int:
    """Retract every still-active release of versions the registry no longer lists."""
    count = 0
    for name in store.list_versions():
        if name in seen:
            continue
        try:
            meta = store.read_meta(name)
        except StateCorruption as e:
            logger.warning("Skipping %s: %s", name, e)
            continue
        if meta is None:
            continue
        active, _ = active_releases(meta.history)
        if not active:
            continue
        for release_name in sorted(active):
            meta.history.append(VersionRetracted(date=now, name=release_name))
        meta.releases = [r for r in meta.releases if r.name not in active]
        store.write_meta(meta)
        count += len(active)
    return count


def sync_releases(
    store: VersionStore,
    bundles: Iterable[ReleaseBundle],
    now: Optional[datetime] = None,
    retract_unlisted: bool = True,
) -> SyncResult:
    ts = now or datetime.now(timezone.utc)
    created: list[str] = []
    discovered = 0
    retracted = 0
    seen: set[str] = set()

    for bundle in bundles:
        seen.add(bundle.name)
        try:
            was_created, n_added, n_removed = sync_bundle(store, bundle, ts)
        except StateCorruption as e:
            logger.warning("Skipping %s: %s", bundle.name, e)
            continue
        if was_created:
            created.append(bundle.name)
        discovered += n_added
        retracted += n_removed

    if retract_unlisted:
        retracted += retract_missing(store, seen, ts)

    logger.info("Discovery: %d new version(s), %d release(s) discovered, %d retracted", len(created), discovered, retracted)
    return SyncResult(created=created, discovered=discovered, retracted=retracted)
