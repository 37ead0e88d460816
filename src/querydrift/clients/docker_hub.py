from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from querydrift.config.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DockerTag:
    name: str
    digest: str | None
    last_updated: str | None  # ISO-8601, as Docker Hub returns it
    v2: bool = True
    images: list[dict] = field(default_factory=list)

    def image_digest(self, os: str, arch: str) -> Optional[str]:
        for image in self.images:
            if image.get("os") == os and image.get("architecture") == arch:
                return image.get("digest")
        return None

    def has_platform(self, os: str, arch: str) -> bool:
        return any(i.get("os") == os and i.get("architecture") == arch for i in self.images)


def build_tags_url(repository: str, page_size: int = 100) -> str:
    return f"{settings.docker_hub_base_url}/{repository}/tags?page_size={page_size}"


def _parse_tag(raw: dict[str, Any]) -> Optional[DockerTag]:
    name = raw.get("name")
    if not name:
        return None
    return DockerTag(
        name=name,
        digest=raw.get("digest"),
        last_updated=raw.get("last_updated"),
        v2=bool(raw.get("v2", True)),
        images=list(raw.get("images") or []),
    )


def fetch_tags(
    repository: str | None = None,
    client: httpx.Client | None = None,
    max_pages: int = 500,
) -> list[DockerTag]:
    """
    List every tag of a Docker Hub repository.

    Design:
    - follows the `next` links until exhausted (bounded by max_pages)
    - dependency injection via `client` makes it testable without real HTTP
    """
    url: str | None = build_tags_url(repository or settings.docker_repository)

    close_client = False
    if client is None:
        client = httpx.Client(timeout=settings.docker_timeout_s)
        close_client = True

    out: list[DockerTag] = []
    pages = 0
    try:
        while url and pages < max_pages:
            logger.debug("GET %s", url)
            r = client.get(url)
            r.raise_for_status()
            payload = r.json()
            pages += 1
            for raw in payload.get("results", []) or []:
                tag = _parse_tag(raw)
                if tag is not None:
                    out.append(tag)
            url = payload.get("next")
    finally:
        if close_client:
            client.close()

    logger.info("Fetched %d tag(s) in %d page(s)", len(out), pages)
    return out
