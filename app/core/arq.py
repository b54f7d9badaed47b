"""ARQ connection pool shared by the side-effect dispatcher."""

import asyncio
import logging
import time
from typing import Optional

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

from app.core.config import settings

logger = logging.getLogger(__name__)

# After a failed connect, callers fail fast for this many seconds
POOL_FAILURE_BACKOFF = 30.0

_arq_pool: Optional[ArqRedis] = None
_last_failure: Optional[float] = None
_pool_lock: Optional[asyncio.Lock] = None


class QueueUnavailable(ConnectionError):
    """Raised while the queue is inside its failure backoff window."""
    pass


def get_redis_settings() -> RedisSettings:
    # Fail fast: the API must never hang on a missing queue.
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    redis_settings.conn_timeout = 2
    redis_settings.conn_retries = 1
    return redis_settings


async def get_arq_pool() -> ArqRedis:
    """
    Return the shared pool, creating it on first use.

    Concurrent callers share one connect attempt. A failed attempt is
    remembered, and for ``POOL_FAILURE_BACKOFF`` seconds afterwards callers
    get ``QueueUnavailable`` immediately instead of reconnecting.
    """
    global _arq_pool, _last_failure, _pool_lock
    if _arq_pool is not None:
        return _arq_pool

    if _pool_lock is None:
        _pool_lock = asyncio.Lock()

    async with _pool_lock:
        if _arq_pool is not None:
            return _arq_pool

        if _last_failure is not None and time.monotonic() - _last_failure < POOL_FAILURE_BACKOFF:
            raise QueueUnavailable("ARQ pool unavailable, backing off after a failed connect")

        try:
            _arq_pool = await create_pool(get_redis_settings())
        except Exception:
            _last_failure = time.monotonic()
            logger.warning(
                "ARQ pool creation failed for %s; backing off %.0fs",
                settings.redis_url, POOL_FAILURE_BACKOFF,
            )
            raise

        _last_failure = None
        logger.info("ARQ pool created for %s", settings.redis_url)
        return _arq_pool


async def close_arq_pool() -> None:
    global _arq_pool
    if _arq_pool:
        await _arq_pool.close()
        _arq_pool = None
        logger.info("ARQ pool closed")
