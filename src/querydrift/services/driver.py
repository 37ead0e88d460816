"""Interface to the per-version database driver adapters."""

from __future__ import annotations

import importlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from querydrift.errors import DriverLoadError, ProbeFailure
from querydrift.models.domain import Version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryResult:
    success: bool
    documents: Optional[list] = None
    error: Optional[dict] = None


@runtime_checkable
class ProbeDriver(Protocol):
    """Uniform surface over whichever native client matches a server version."""

    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def init_collection(
        self,
        name: str,
        indices: Optional[list] = None,
        documents: Optional[list] = None,
    ) -> None: ...

    def drop_collection(self, name: str) -> None: ...

    def execute(self, query: Any) -> QueryResult: ...


DriverFactory = Callable[[Version], ProbeDriver]


def normalize_error(error: Any) -> Optional[dict]:
    """Driver errors differ in shape across client generations."""
    if error is None:
        return None
    if isinstance(error, dict):
        message = error.get("message") or error.get("errmsg") or str(error)
        code = error.get("code") or error.get("codeName")
        kind = error.get("type") or error.get("name")
    else:
        message = getattr(error, "message", None) or getattr(error, "errmsg", None) or str(error)
        code = getattr(error, "code", None) or getattr(error, "codeName", None)
        kind = type(error).__name__
    out = {"message": message}
    if code is not None:
        out["code"] = code
    if kind:
        out["type"] = kind
    return out


def connect_with_retry(
    driver: ProbeDriver,
    attempts: int,
    delay_s: float,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Bounded connect attempts with a fixed delay in between."""
    attempts = max(attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            driver.connect()
            return
        except Exception as e:
            if attempt == attempts:
                raise ProbeFailure(f"connect failed after {attempts} attempt(s): {e}") from e
            logger.info("Connection attempt %d/%d failed, retrying in %.1fs", attempt, attempts, delay_s)
            sleep(delay_s)


def load_driver_factory(ref: str) -> DriverFactory:
    """Resolve `package.module:callable` into a driver factory."""
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise DriverLoadError(f"Expected 'module:factory', got {ref!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise DriverLoadError(f"Cannot import {module_name!r}: {e}") from e
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise DriverLoadError(f"{ref!r} is not callable")
    return factory
