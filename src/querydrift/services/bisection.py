"""
Bisection-driven priorities within one version family (`major.minor`).

Only the family's endpoints are always probed. Between them, binary search
decides which members are worth probing next: if two probed versions
behave the same, everything in between is assumed to behave the same too
(a heuristic, re-checked every pass as new results arrive); if they differ,
the midpoint is probed next.

Priority numbers are ascending urgency: 1 is probed first.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Sequence

from querydrift.services.equivalence import equivalent as default_equivalent
from querydrift.services.state import VersionState

logger = logging.getLogger(__name__)

NEWEST_PRIORITY = 1
OLDEST_PRIORITY = 2
FIRST_BISECT_PRIORITY = 3
HOMOGENEOUS_PRIORITY = 1000
PENDING_PRIORITY_BASE = 100

Equivalence = Callable[[VersionState, VersionState], bool]


def recursive_bisect(
    members: Sequence[VersionState],
    lo: int,
    hi: int,
    priority: int,
    assigned: Mapping[str, int],
    equivalent: Equivalence = default_equivalent,
) -> dict[str, int]:
    """
    Bisect `members[lo..hi]` and return the newly assigned priorities.

    `assigned` is read-only here; the caller merges the result.
    """
    mid = (lo + hi) // 2
    if mid == lo or mid == hi:
        return {}

    member = members[mid]
    out: dict[str, int] = {}
    if member.name not in assigned:
        out[member.name] = priority

    # an unprobed midpoint has to be probed before its neighbourhood means anything
    if member.has_pending:
        return out

    same_as_lo = equivalent(member, members[lo])
    same_as_hi = equivalent(member, members[hi])
    if same_as_lo and same_as_hi:
        return out

    seen = {**assigned, **out}
    if not same_as_lo:
        found = recursive_bisect(members, lo, mid, priority + 1, seen, equivalent)
        out.update(found)
        seen.update(found)
    if not same_as_hi:
        out.update(recursive_bisect(members, mid, hi, priority + 1, seen, equivalent))
    return out


def fallback_priority(state: VersionState) -> int:
    if state.failing and state.backoff.priority is not None:
        return state.backoff.priority
    return PENDING_PRIORITY_BASE - len(state.pending)


def assign_family_priorities(
    members: Sequence[VersionState],
    equivalent: Equivalence = default_equivalent,
) -> dict[str, int]:
    """
    Priorities for every member of one family.

    `members` must be sorted ascending.
    """
    if not members:
        return {}

    newest = members[-1]
    oldest = members[0]
    priorities: dict[str, int] = {newest.name: NEWEST_PRIORITY}
    if oldest.name != newest.name:
        priorities.setdefault(oldest.name, OLDEST_PRIORITY)

    if len(members) > 2:
        if equivalent(newest, oldest):
            for member in members[1:-1]:
                priorities.setdefault(member.name, HOMOGENEOUS_PRIORITY)
        else:
            found = recursive_bisect(
                members, 0, len(members) - 1, FIRST_BISECT_PRIORITY, priorities, equivalent
            )
            priorities.update(found)

    for member in members:
        if member.name not in priorities:
            priorities[member.name] = fallback_priority(member)

    logger.debug(
        "Family %s: %s",
        newest.version.family,
        ", ".join(f"{m.name}={priorities[m.name]}" for m in members),
    )
    return priorities
