from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized config.

    Key idea:
    - read from env first (so tests/CI can override),
    - otherwise default to local dev values.
    """

    model_config = SettingsConfigDict(env_prefix="QUERYDRIFT_", extra="ignore")

    # collect/, catalog-queries.json, workload.json and unified.json live here
    automation_dir: str = "automation"

    # how many versions one planning pass hands to the collector
    batch_size: int = 5

    # Docker Hub tag listing (release discovery)
    docker_hub_base_url: str = "https://registry.hub.docker.com/v2/repositories/library"
    docker_repository: str = "mongo"
    docker_timeout_s: float = 20.0
    docker_platform_os: str = "linux"
    docker_platform_arch: str = "amd64"

    # driver connect loop (fixed backoff, bounded attempts)
    driver_connect_attempts: int = 10
    driver_connect_delay_s: float = 1.0

    # read-only API
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    log_level: str = "INFO"
    log_dir: str | None = None


settings = Settings()
