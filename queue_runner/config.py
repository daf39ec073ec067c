"""Configuration for the queue runner metrics layer."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_NAMESPACE = "hydraqueuerunner"


class _Settings(BaseSettings):
    metrics_namespace: str = Field(
        default=DEFAULT_NAMESPACE, alias="QUEUE_RUNNER_METRICS_NAMESPACE"
    )
    metrics_path: str = Field(default="/metrics", alias="QUEUE_RUNNER_METRICS_PATH")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> _Settings:
    """Return cached settings."""

    return _Settings()  # type: ignore[call-arg]


def reset_settings_cache() -> None:
    """Clear cached settings (primarily for tests)."""

    get_settings.cache_clear()


__all__ = ["DEFAULT_NAMESPACE", "get_settings", "reset_settings_cache"]
