"""Merge family priorities into one ranked batch."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Mapping

from querydrift.models.domain import BatchSelection, PriorityEntry
from querydrift.services.bisection import HOMOGENEOUS_PRIORITY
from querydrift.services.state import VersionState

logger = logging.getLogger(__name__)

MODE_NORMAL = "normal"
MODE_RETRY_SKIPPED = "retry-skipped"
MODE_IDLE = "idle"


def rank_entries(entries: Iterable[PriorityEntry]) -> list[PriorityEntry]:
    """Ascending priority; ties go to the newest version."""
    ordered = sorted(entries, key=lambda e: e.version.key, reverse=True)
    return sorted(ordered, key=lambda e: e.priority)


def build_entries(
    states: Iterable[VersionState],
    priorities: Mapping[str, int],
    now: datetime,
) -> list[PriorityEntry]:
    out: list[PriorityEntry] = []
    for state in states:
        if state.name not in priorities:
            continue
        out.append(
            PriorityEntry(
                name=state.name,
                version=state.version,
                priority=priorities[state.name],
                pending=len(state.pending),
                failing=state.failing,
                eligible=state.backoff.eligible(now),
            )
        )
    return out


def select_batch(
    states: Iterable[VersionState],
    priorities: Mapping[str, int],
    batch_size: int,
    now: datetime,
) -> BatchSelection:
    """
    Top `batch_size` versions with pending work.

    Versions still waiting out their backoff, fully retracted versions and
    interior members of a homogeneous family range are never selected. When
    every selected version is a retry of a known failure, the selection says
    so (`retry-skipped`).
    """
    candidates = [
        s for s in states
        if s.has_pending and not s.retracted and s.name in priorities
        and priorities[s.name] != HOMOGENEOUS_PRIORITY
    ]
    entries = build_entries(candidates, priorities, now)
    waiting = [e.name for e in entries if not e.eligible]
    if waiting:
        logger.info("Backoff holds %d version(s): %s", len(waiting), ", ".join(sorted(waiting)))

    ranked = rank_entries(e for e in entries if e.eligible)
    chosen = ranked[: max(batch_size, 0)]

    if not chosen:
        mode = MODE_IDLE
    elif all(e.failing for e in chosen):
        mode = MODE_RETRY_SKIPPED
    else:
        mode = MODE_NORMAL

    return BatchSelection(versions=[e.name for e in chosen], mode=mode, entries=chosen)
