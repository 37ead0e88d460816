"""
Drive scheduled versions through an external driver and record outcomes.

Probes of one version share a live collection on the target server, so a
version is always collected strictly sequentially. Failures are recorded as
`collection-halted` and never escape the batch loop.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from querydrift.config.settings import settings
from querydrift.errors import ProbeFailure, StateCorruption
from querydrift.models.domain import CatalogItem, CollectSummary, ProbeOutcome, Version
from querydrift.models.schema import CollectionCompleted, CollectionHalted
from querydrift.repos.version_store import VersionStore
from querydrift.services.catalog_source import CatalogDefinition, CatalogSource
from querydrift.services.driver import DriverFactory, ProbeDriver, connect_with_retry, normalize_error
from querydrift.services.serialization import checksum, probe_id
from querydrift.services.work_planner import pending_catalogs

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def run_catalog(driver: ProbeDriver, item: CatalogItem, definition: CatalogDefinition) -> list[ProbeOutcome]:
    """Load the fixture, run every operation in order, drop the collection."""
    try:
        driver.init_collection(item.name, indices=definition.indices, documents=definition.records)
    except Exception as e:
        raise ProbeFailure(f"fixture-load-failed: {e}") from e

    outcomes: list[ProbeOutcome] = []
    try:
        for operation in definition.operations:
            try:
                result = driver.execute(operation)
            except Exception as e:
                raise ProbeFailure(f"execute-failed: {e}") from e
            if result.success:
                outcomes.append(ProbeOutcome(id=probe_id(operation), operation=operation, documents=list(result.documents or [])))
            else:
                outcomes.append(ProbeOutcome(id=probe_id(operation), operation=operation, error=normalize_error(result.error) or {"message": "unknown"}))
    finally:
        try:
            driver.drop_collection(item.name)
        except Exception as e:
            logger.warning("Could not drop collection %s: %s", item.name, e)
    return outcomes


def collect_version(
    store: VersionStore,
    name: str,
    items: Sequence[CatalogItem],
    source: CatalogSource,
    driver: ProbeDriver,
    now_fn: Callable[[], datetime] = utcnow,
    connect_attempts: Optional[int] = None,
    connect_delay_s: Optional[float] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> CollectSummary:
    try:
        meta = store.read_meta(name)
    except StateCorruption as e:
        # appending would overwrite whatever the broken file still holds
        logger.error("%s: meta.json unreadable, skipping collection: %s", name, e)
        return CollectSummary(name=name, completed=[], halted=[], reason=f"state-corrupt: {e}", finished_at=now_fn())
    pending = pending_catalogs(items, meta.history if meta is not None else [])
    if not pending:
        logger.info("%s: nothing pending", name)
        return CollectSummary(name=name, completed=[], halted=[], finished_at=now_fn())

    retry_kwargs = {} if sleep is None else {"sleep": sleep}
    try:
        connect_with_retry(
            driver,
            attempts=connect_attempts if connect_attempts is not None else settings.driver_connect_attempts,
            delay_s=connect_delay_s if connect_delay_s is not None else settings.driver_connect_delay_s,
            **retry_kwargs,
        )
    except ProbeFailure as e:
        logger.error("%s: %s", name, e)
        store.append_history(name, CollectionHalted(date=now_fn(), reason=str(e)))
        return CollectSummary(name=name, completed=[], halted=[], reason=str(e), finished_at=now_fn())

    completed: list[str] = []
    halted: list[str] = []
    try:
        for item in pending:
            try:
                definition = source.load(item)
                outcomes = run_catalog(driver, item, definition)
            except ProbeFailure as e:
                logger.warning("%s/%s halted: %s", name, item.name, e)
                store.append_history(name, CollectionHalted(date=now_fn(), catalog=item.name, reason=str(e)))
                halted.append(item.name)
                continue

            try:
                rows = store.write_results(name, item.name, outcomes)
            except (TypeError, ValueError, OSError) as e:
                # a driver document json cannot encode (bytes, ObjectId, ...)
                reason = f"result-write-failed: {type(e).__name__}: {e}"
                logger.warning("%s/%s halted: %s", name, item.name, reason)
                store.append_history(name, CollectionHalted(date=now_fn(), catalog=item.name, reason=reason))
                halted.append(item.name)
                continue

            store.append_history(
                name,
                CollectionCompleted(
                    date=now_fn(),
                    catalog=item.name,
                    hash=item.hash,
                    result_checksum=checksum(rows),
                ),
            )
            completed.append(item.name)
            logger.info("%s/%s completed (%d operations)", name, item.name, len(outcomes))
    finally:
        try:
            driver.disconnect()
        except Exception as e:
            logger.warning("%s: disconnect failed: %s", name, e)

    return CollectSummary(name=name, completed=completed, halted=halted, finished_at=now_fn())


def _record_halt(store: VersionStore, name: str, reason: str, now_fn: Callable[[], datetime]) -> None:
    try:
        store.append_history(name, CollectionHalted(date=now_fn(), reason=reason))
    except (StateCorruption, OSError) as e:
        logger.error("%s: halt not recorded: %s", name, e)


def collect_batch(
    store: VersionStore,
    names: Sequence[str],
    items: Sequence[CatalogItem],
    source: CatalogSource,
    driver_factory: DriverFactory,
    now_fn: Callable[[], datetime] = utcnow,
    **kwargs,
) -> list[CollectSummary]:
    """One version after another; a failing version never stops the batch."""
    summaries: list[CollectSummary] = []
    for name in names:
        try:
            driver = driver_factory(Version.parse(name))
        except Exception as e:
            reason = f"driver-unavailable: {e}"
            logger.error("%s: %s", name, reason)
            _record_halt(store, name, reason, now_fn)
            summaries.append(CollectSummary(name=name, completed=[], halted=[], reason=reason, finished_at=now_fn()))
            continue
        try:
            summaries.append(collect_version(store, name, items, source, driver, now_fn=now_fn, **kwargs))
        except Exception as e:
            reason = f"collection-aborted: {type(e).__name__}: {e}"
            logger.exception("%s: %s", name, reason)
            _record_halt(store, name, reason, now_fn)
            summaries.append(CollectSummary(name=name, completed=[], halted=[], reason=reason, finished_at=now_fn()))
    return summaries
