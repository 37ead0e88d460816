"""
Canonical serialization of operations, documents and errors.

Operations may hold values JSON cannot express (dates, regular
expressions). They are encoded as marker strings that carry the key they
were found under, so the encoding is reversible:

    {"established": datetime(2014, 10, 20)}
      -> {"established": "@Date:established/2014-10-20T00:00:00.000Z"}
    {"name": re.compile("Bathroom$")}
      -> {"name": "@RegExp:name/Bathroom$/"}

Everything here is pure + deterministic so checksums are stable across runs.
"""

from __future__ import annotations

import hashlib
import json
import re
from datetime import datetime, timezone
from typing import Any

MARKER = re.compile(r"^@([a-zA-Z]+):([^/]+)/([^/]+)(?:/([^/]+))?")

_FLAG_BITS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

ID_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def _iso(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _flags(pattern: re.Pattern) -> str:
    return "".join(ch for ch, bit in _FLAG_BITS.items() if pattern.flags & bit)


def encode(value: Any, key: str | int = "") -> Any:
    """Replace dates and patterns by marker strings (recursively)."""
    if isinstance(value, datetime):
        return f"@Date:{key}/{_iso(value)}"
    if isinstance(value, re.Pattern):
        return f"@RegExp:{key}/{value.pattern}/{_flags(value)}"
    if isinstance(value, dict):
        return {str(k): encode(v, k) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode(v, i) for i, v in enumerate(value)]
    return value


def revive(value: Any, key: str | int = "") -> Any:
    """Inverse of `encode`: markers whose key matches become real objects."""
    if isinstance(value, str):
        match = MARKER.match(value)
        if match and match.group(2) == str(key):
            kind, _, raw, options = match.groups()
            if kind == "Date":
                return datetime.fromisoformat(raw.replace("Z", "+00:00"))
            if kind == "RegExp":
                flags = 0
                for ch in options or "":
                    flags |= _FLAG_BITS.get(ch, 0)
                return re.compile(raw, flags)
        return value
    if isinstance(value, dict):
        return {k: revive(v, k) for k, v in value.items()}
    if isinstance(value, list):
        return [revive(v, i) for i, v in enumerate(value)]
    return value


def serialize(value: Any, indent: int | None = None) -> str:
    if indent is None:
        return json.dumps(encode(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return json.dumps(encode(value), sort_keys=True, indent=indent, ensure_ascii=False)


def deserialize(text: str) -> Any:
    return revive(json.loads(text))


def checksum(value: Any) -> str:
    return hashlib.sha256(serialize(value).encode("utf-8")).hexdigest()


def probe_id(operation: Any, length: int = 12) -> str:
    """Short, stable identifier for an operation."""
    digest = hashlib.sha256(serialize(operation).encode("utf-8")).digest()
    return "".join(ID_ALPHABET[b % len(ID_ALPHABET)] for b in digest[:length])
