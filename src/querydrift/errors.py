"""Exception types shared across the package."""

from __future__ import annotations


class QuerydriftError(Exception):
    """Base class for every error raised by querydrift."""


class InvalidVersionError(QuerydriftError, ValueError):
    """Text that does not look like a server version."""


class ProbeFailure(QuerydriftError):
    """
    A probe attempt could not produce outcomes.

    Covers connection drops, fixture load failures and driver crashes.
    A query the server *rejects* is not a ProbeFailure; that is a recorded
    outcome (`{"error": ...}`).
    """


class StateCorruption(QuerydriftError):
    """A persisted meta.json / plan.json could not be read or validated."""


class DriverLoadError(QuerydriftError):
    """A `module:factory` driver reference could not be resolved."""
