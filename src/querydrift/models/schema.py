"""On-disk schemas for meta.json, plan.json, result files and unified.json."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from querydrift.models.domain import CatalogItem


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: datetime


class CollectionCompleted(_Record):
    type: Literal["collection-completed"] = "collection-completed"
    catalog: str
    hash: str
    result_checksum: str = Field(alias="resultChecksum")


class CollectionHalted(_Record):
    type: Literal["collection-halted"] = "collection-halted"
    # None: the whole version halted (e.g. the server never came up)
    catalog: Optional[str] = None
    reason: str


class VersionDiscovered(_Record):
    type: Literal["version-discovered"] = "version-discovered"
    name: str
    digest: str


class VersionRetracted(_Record):
    type: Literal["version-retracted"] = "version-retracted"
    name: str


HistoryRecord = Annotated[
    Union[CollectionCompleted, CollectionHalted, VersionDiscovered, VersionRetracted],
    Field(discriminator="type"),
]


class Release(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    version: str
    digest: Optional[str] = None
    released: Optional[datetime] = None


class VersionMeta(BaseModel):
    """meta.json: one per resolved release."""

    name: str
    version: str
    releases: list[Release] = Field(default_factory=list)
    history: list[HistoryRecord] = Field(default_factory=list)


class CatalogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    hash: str

    @classmethod
    def from_item(cls, item: CatalogItem) -> "CatalogEntry":
        return cls(name=item.name, path=item.path, hash=item.hash)

    def to_item(self) -> CatalogItem:
        return CatalogItem(name=self.name, path=self.path, hash=self.hash)


class PlanFile(BaseModel):
    """plan.json: derived outstanding work, persisted for inspection."""

    version: str
    name: Optional[str] = None
    catalogs: list[CatalogEntry] = Field(default_factory=list)
    created: datetime
    updated: datetime


class ProbeRecord(BaseModel):
    """One entry of `<catalog>.json`."""

    model_config = ConfigDict(extra="ignore")

    id: str
    operation: Any
    documents: Optional[list[Any]] = None
    error: Optional[Any] = None


class UnifiedResult(BaseModel):
    documents: Optional[list[Any]] = None
    error: Optional[Any] = None
    versions: str


class UnifiedEntry(BaseModel):
    catalog: str
    operation: Any
    results: list[UnifiedResult]


class CatalogExport(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    type: Optional[str] = None
    hash: str


class CatalogFileRecord(BaseModel):
    """One entry of catalog-queries.json (produced by the catalog generator)."""

    model_config = ConfigDict(extra="allow")

    name: str
    path: str
    exports: list[CatalogExport] = Field(default_factory=list)
