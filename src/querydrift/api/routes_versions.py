"""Version state API routes."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from querydrift.api.deps import get_catalog_items, get_store
from querydrift.api.schemas import HistoryOut, VersionDetailResponse, VersionListResponse, VersionSummary
from querydrift.errors import StateCorruption
from querydrift.models.domain import CatalogItem, Version
from querydrift.repos.version_store import VersionStore
from querydrift.services.backoff import required_wait_days
from querydrift.services.history import last_activity
from querydrift.services.planning import load_meta_or_empty
from querydrift.services.state import VersionState, build_state
from querydrift.services.versions import VersionRegistry

router = APIRouter(prefix="/versions", tags=["versions"])


def _summary(state: VersionState) -> VersionSummary:
    return VersionSummary(
        name=state.name,
        family=state.version.family,
        completed=len(state.completed),
        pending=len(state.pending),
        failing=state.failing,
        failure_count=state.backoff.failure_count,
        retracted=state.retracted,
        combined_checksum=state.combined_checksum,
    )


@router.get("", response_model=VersionListResponse)
def list_versions(
    store: VersionStore = Depends(get_store),
    items: list[CatalogItem] = Depends(get_catalog_items),
):
    registry = VersionRegistry(store.list_versions())
    summaries: list[VersionSummary] = []
    corrupt: list[str] = []
    for version in registry.ordered:
        meta, broken = load_meta_or_empty(store, str(version))
        if broken:
            corrupt.append(meta.name)
        summaries.append(_summary(build_state(meta, items)))
    return VersionListResponse(versions=summaries, corrupt=corrupt)


@router.get("/{name}", response_model=VersionDetailResponse)
def get_version(
    name: str,
    store: VersionStore = Depends(get_store),
    items: list[CatalogItem] = Depends(get_catalog_items),
):
    if not Version.is_version_string(name):
        raise HTTPException(status_code=400, detail=f"Invalid version {name!r}")
    try:
        meta = store.read_meta(name)
    except StateCorruption as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    if meta is None:
        raise HTTPException(status_code=404, detail="Version not found")

    state = build_state(meta, items)
    next_retry = None
    if state.failing:
        wait = required_wait_days(state.backoff.failure_count)
        next_retry = max(0.0, wait - state.backoff.elapsed_days(datetime.now(timezone.utc)))

    return VersionDetailResponse(
        summary=_summary(state),
        releases=[r.name for r in meta.releases],
        pending_catalogs=[i.name for i in state.pending],
        next_retry_days=next_retry,
        last_activity=last_activity(meta.history),
        history=[HistoryOut.model_validate(r.model_dump()) for r in meta.history],
    )
