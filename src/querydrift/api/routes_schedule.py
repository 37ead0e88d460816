"""Schedule and cross-version report API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from querydrift.api.deps import get_catalog_items, get_store
from querydrift.api.schemas import ScheduleEntryOut, ScheduleResponse, UnifiedEntryOut
from querydrift.config.settings import settings
from querydrift.models.domain import CatalogItem
from querydrift.repos.version_store import VersionStore
from querydrift.services.planning import run_planning_pass
from querydrift.services.unify import entry_to_json, unify

router = APIRouter(tags=["schedule"])


@router.get("/schedule", response_model=ScheduleResponse)
def get_schedule(
    batch_size: int = Query(settings.batch_size, ge=0, le=100),
    store: VersionStore = Depends(get_store),
    items: list[CatalogItem] = Depends(get_catalog_items),
):
    report = run_planning_pass(store, items, batch_size, persist=False)
    return ScheduleResponse(
        mode=report.selection.mode,
        versions=report.selection.versions,
        entries=[
            ScheduleEntryOut(name=e.name, priority=e.priority, pending=e.pending, failing=e.failing)
            for e in report.selection.entries
        ],
        priorities=report.priorities,
    )


@router.get("/unified", response_model=list[UnifiedEntryOut], response_model_exclude_unset=True)
def get_unified(store: VersionStore = Depends(get_store)):
    return [entry_to_json(e) for e in unify(store)]
