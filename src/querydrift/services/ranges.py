"""Compressed version-range strings such as `4.2..4.4,5.0`."""

from __future__ import annotations

from typing import Iterable

from querydrift.services.versions import VersionRegistry

RUN_SEPARATOR = ".."
ITEM_SEPARATOR = ","


def compress_ranges(names: Iterable[str], registry: VersionRegistry) -> str:
    """
    Encode a version set as singles and `first..last` runs.

    A run only spans versions that are adjacent in the registry's full known
    sequence: any known version in between (unprobed, or behaving
    differently) splits it, so expanding the result gives back exactly the
    input set.
    """
    ordered = [str(registry.get(n)) for n in registry.sort(names)]
    if not ordered:
        return ""

    runs: list[list[str]] = [[ordered[0]]]
    for prev, curr in zip(ordered, ordered[1:]):
        if registry.index_of(curr) == registry.index_of(prev) + 1:
            runs[-1].append(curr)
        else:
            runs.append([curr])

    return ITEM_SEPARATOR.join(
        run[0] if len(run) == 1 else f"{run[0]}{RUN_SEPARATOR}{run[-1]}" for run in runs
    )


def expand_ranges(text: str, registry: VersionRegistry) -> list[str]:
    """Inverse of `compress_ranges`, in canonical order."""
    ordered = registry.ordered
    out: list[str] = []
    for token in (t.strip() for t in text.split(ITEM_SEPARATOR)):
        if not token:
            continue
        if RUN_SEPARATOR in token:
            first, last = token.split(RUN_SEPARATOR, 1)
            lo, hi = registry.index_of(first), registry.index_of(last)
            if lo > hi:
                raise ValueError(f"Descending range {token!r}")
            out.extend(str(v) for v in ordered[lo : hi + 1])
        else:
            out.append(str(registry.get(token)))
    return registry.sort(out)


def min_version_key(text: str, registry: VersionRegistry) -> tuple:
    """Sort key for a compressed string: its lowest member."""
    first = text.split(ITEM_SEPARATOR, 1)[0].split(RUN_SEPARATOR, 1)[0]
    return registry.get(first).key
