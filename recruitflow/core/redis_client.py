"""Process-wide redis.asyncio pool used by the cross-worker event relay."""

import logging
from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from recruitflow.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None


async def get_redis() -> Redis:
    """Client on the shared pool; the pool is opened on first use."""
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            health_check_interval=30,
            decode_responses=True,
        )
        logger.info(f"[Redis] Pool opened for channel {settings.broadcast_channel}")
    return Redis(connection_pool=_pool)


async def close_redis_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.aclose()
        logger.info("[Redis] Pool closed")
