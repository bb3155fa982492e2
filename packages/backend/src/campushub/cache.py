"""Redis connection — backs the rate limiter.

The pool is initialized in the app lifespan. Everything that uses it
must cope with Redis being absent (tests, local runs without Redis).
"""

from typing import Optional

import redis.asyncio as aioredis

from campushub.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Verify connection before publishing the pool
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection. Raises if not initialized."""
    if _redis is None:
        raise RuntimeError("Redis not initialized — call init_redis() first")
    return _redis
