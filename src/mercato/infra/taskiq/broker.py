"""TaskIQ broker configured with Redis Stream and retry middleware.

Redis Stream gives reliable delivery with acknowledgements; the retry
middleware re-enqueues tasks labelled ``retry_on_error=True`` up to
``TASKIQ_MAX_RETRIES`` times.

Usage:
    from mercato.infra.taskiq import broker

    @broker.task(retry_on_error=True)
    async def my_task(arg: str) -> None:
        ...

    await my_task.kiq("value")

    # Start worker
    # taskiq worker mercato.infra.taskiq.broker:broker mercato.domain.erasure.infrastructure.compliance_tasks
"""

from __future__ import annotations

from functools import lru_cache

from taskiq.middlewares import SimpleRetryMiddleware
from taskiq_redis import RedisAsyncResultBackend, RedisStreamBroker

from mercato.infra.taskiq.settings import get_taskiq_settings


@lru_cache(maxsize=1)
def get_result_backend() -> RedisAsyncResultBackend[None]:
    """Get or create the TaskIQ result backend."""
    settings = get_taskiq_settings()
    return RedisAsyncResultBackend(
        redis_url=settings.redis_url,
        result_ex_time=settings.result_ttl,
    )


@lru_cache(maxsize=1)
def get_broker() -> RedisStreamBroker:
    """Get or create the TaskIQ broker.

    Returns:
        RedisStreamBroker configured from TaskIQSettings, with result
        backend and retry middleware attached.
    """
    settings = get_taskiq_settings()
    return (
        RedisStreamBroker(url=settings.redis_url, queue_name=settings.queue_name)
        .with_result_backend(get_result_backend())
        .with_middlewares(SimpleRetryMiddleware(default_retry_count=settings.max_retries))
    )


class _LazyBroker:
    """Lazy proxy that defers broker creation until first attribute access.

    The taskiq CLI and ``@broker.task`` decorators import ``broker`` at module
    level; settings are only read once the broker is actually used.
    """

    _instance: RedisStreamBroker | None = None

    def _get(self) -> RedisStreamBroker:
        if self._instance is None:
            self._instance = get_broker()
        return self._instance

    def __getattr__(self, name: str) -> object:
        return getattr(self._get(), name)


broker: RedisStreamBroker = _LazyBroker()  # type: ignore[assignment]
