"""Smoke test for a running querydrift API."""

from __future__ import annotations

import os

import httpx


def main() -> int:
    base = os.getenv("QUERYDRIFT_BASE_URL", "http://localhost:8000")
    health = httpx.get(f"{base}/api/health", timeout=10)
    if health.status_code != 200:
        print("Health failed:", health.status_code, health.text)
        return 1

    res = httpx.get(f"{base}/api/schedule", params={"batch_size": 5}, timeout=30)
    if res.status_code != 200:
        print("Schedule failed:", res.status_code, res.text)
        return 1
    data = res.json()
    print("mode:", data.get("mode"))
    print("batch:", ",".join(data.get("versions", [])) or "-")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
