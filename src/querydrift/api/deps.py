"""API dependencies."""

from __future__ import annotations

from pathlib import Path

from fastapi import HTTPException

from querydrift.config.settings import settings
from querydrift.errors import QuerydriftError
from querydrift.models.domain import CatalogItem
from querydrift.repos.catalog_repo import CatalogRepository
from querydrift.repos.version_store import VersionStore


def get_automation_root() -> Path:
    return Path(settings.automation_dir)


def get_store() -> VersionStore:
    return VersionStore(get_automation_root())


def get_catalog_items() -> list[CatalogItem]:
    try:
        return CatalogRepository.in_automation(get_automation_root()).list_items()
    except QuerydriftError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
