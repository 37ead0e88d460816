"""API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class VersionSummary(BaseModel):
    name: str
    family: str
    completed: int
    pending: int
    failing: bool
    failure_count: int
    retracted: bool
    combined_checksum: Optional[str] = None


class VersionListResponse(BaseModel):
    versions: list[VersionSummary]
    corrupt: list[str] = []


class HistoryOut(BaseModel):
    type: str
    date: datetime
    catalog: Optional[str] = None
    name: Optional[str] = None
    reason: Optional[str] = None
    hash: Optional[str] = None
    result_checksum: Optional[str] = None


class VersionDetailResponse(BaseModel):
    summary: VersionSummary
    releases: list[str]
    pending_catalogs: list[str]
    next_retry_days: Optional[float] = None
    last_activity: Optional[datetime] = None
    history: list[HistoryOut]


class ScheduleEntryOut(BaseModel):
    name: str
    priority: int
    pending: int
    failing: bool


class ScheduleResponse(BaseModel):
    mode: str
    versions: list[str]
    entries: list[ScheduleEntryOut]
    priorities: dict[str, int]


class UnifiedResultOut(BaseModel):
    documents: Optional[list[Any]] = None
    error: Optional[Any] = None
    versions: str


class UnifiedEntryOut(BaseModel):
    catalog: str
    operation: Any
    results: list[UnifiedResultOut]
