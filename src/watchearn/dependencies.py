"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

import redis.asyncio as aioredis

from watchearn.redis_client import get_redis as _get_redis


async def get_redis_dep() -> AsyncGenerator[aioredis.Redis | None, None]:
    """Yield the Redis client, or None when Redis was never initialized."""
    try:
        client = _get_redis()
    except RuntimeError:
        client = None
    yield client
