"""
Failure backoff for versions stuck in repeated probe failure.

State is reconstructed from history on every pass:

    Clean --collection-halted--> Failing --collection-completed--> Clean

While Failing, `failure_count` counts the halts of the current run and
`first_failure` is the date of the run's first halt. A retry is allowed once
`elapsed_days >= 2 ** (failure_count - 1)`, i.e. after 1, 2, 4, 8, ... days.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from querydrift.models.schema import (
    CollectionCompleted,
    CollectionHalted,
    HistoryRecord,
    VersionDiscovered,
    VersionRetracted,
)
from querydrift.services.history import as_utc

logger = logging.getLogger(__name__)

FAILING_PRIORITY_BASE = 1000


@dataclass(frozen=True)
class BackoffState:
    failing: bool = False
    failure_count: int = 0
    first_failure: Optional[datetime] = None

    def elapsed_days(self, now: datetime) -> float:
        if self.first_failure is None:
            return 0.0
        return (as_utc(now) - as_utc(self.first_failure)).total_seconds() / 86400.0

    def eligible(self, now: datetime) -> bool:
        if not self.failing:
            return True
        return self.elapsed_days(now) >= required_wait_days(self.failure_count)

    @property
    def priority(self) -> Optional[int]:
        """Older, more persistent failures are less urgent (higher number)."""
        if not self.failing:
            return None
        return FAILING_PRIORITY_BASE - self.failure_count


def required_wait_days(failure_count: int) -> int:
    if failure_count <= 0:
        return 0
    return 2 ** (failure_count - 1)


def backoff_state(history: Iterable[HistoryRecord]) -> BackoffState:
    state = BackoffState()
    for record in history:
        match record:
            case CollectionHalted(date=date):
                if state.failing:
                    state = BackoffState(True, state.failure_count + 1, state.first_failure)
                else:
                    state = BackoffState(True, 1, date)
            case CollectionCompleted():
                state = BackoffState()
            case VersionDiscovered() | VersionRetracted():
                pass
    return state
