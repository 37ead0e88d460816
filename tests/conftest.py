"""Global test fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from querydrift.models.domain import CatalogItem  # noqa: E402
from querydrift.repos.version_store import VersionStore  # noqa: E402

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def automation(tmp_path) -> Path:
    root = tmp_path / "automation"
    root.mkdir()
    return root


@pytest.fixture
def store(automation) -> VersionStore:
    return VersionStore(automation)


@pytest.fixture
def items() -> list[CatalogItem]:
    return [
        CatalogItem(name="comparison", path="src/query/comparison.ts", hash="h-cmp-1"),
        CatalogItem(name="logical", path="src/query/logical.ts", hash="h-log-1"),
    ]
