"""TaskIQ configuration using Pydantic settings.

Settings are loaded from environment variables with ``TASKIQ_`` prefix.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TaskIQSettings(BaseSettings):
    """Configuration for the TaskIQ broker used by background compliance work.

    Environment Variables:
        TASKIQ_REDIS_URL: Redis URL for the broker
            (default: redis://localhost:6379/1)
        TASKIQ_RESULT_TTL: Result backend TTL in seconds (default: 3600)
        TASKIQ_QUEUE_NAME: Redis stream holding queued tasks (default: mercato)
        TASKIQ_MAX_RETRIES: Attempts after the first failure of a task
            labelled ``retry_on_error`` (default: 5)

    Example:
        >>> settings = TaskIQSettings()
        >>> settings.max_retries
        5
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKIQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    redis_url: str = Field(
        default="redis://localhost:6379/1",
        description="Redis URL for TaskIQ broker (database 1 by default)",
    )
    result_ttl: int = Field(
        default=3600,
        ge=60,
        le=86400,
        description="Result backend TTL in seconds",
    )
    queue_name: str = Field(
        default="mercato",
        min_length=1,
        description="Redis stream name for queued tasks",
    )
    max_retries: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Retry attempts for tasks labelled retry_on_error",
    )


@lru_cache(maxsize=1)
def get_taskiq_settings() -> TaskIQSettings:
    """Get cached TaskIQ settings singleton.

    Clear cache with ``get_taskiq_settings.cache_clear()`` for testing.
    """
    return TaskIQSettings()
