"""Redis sliding-window counters shared by the IP middleware and the ledger.

Each window is a sorted set of attempt timestamps. An attempt is recorded,
the set is trimmed to the window, and the attempt is withdrawn again when it
pushed the count over the limit so rejected calls do not extend the lockout.
"""

from __future__ import annotations

import math
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

import redis.asyncio as aioredis
import structlog

from watchearn.errors import RateLimitError

logger = structlog.get_logger()


@dataclass(frozen=True)
class Window:
    name: str
    limit: int
    seconds: int


@dataclass(frozen=True)
class WindowResult:
    allowed: bool
    count: int
    remaining: int
    retry_after: int


async def hit(redis: aioredis.Redis, key: str, window: Window, now: float | None = None) -> WindowResult:
    """Record one attempt against `key` and report whether it fits in `window`."""
    if now is None:
        now = time.time()
    member = f"{now:.6f}:{uuid.uuid4().hex}"

    pipe = redis.pipeline(transaction=True)
    pipe.zremrangebyscore(key, 0, now - window.seconds)
    pipe.zadd(key, {member: now})
    pipe.zcard(key)
    pipe.expire(key, window.seconds + 1)
    results = await pipe.execute()
    count = int(results[2])

    if count <= window.limit:
        return WindowResult(allowed=True, count=count, remaining=window.limit - count, retry_after=0)

    await redis.zrem(key, member)
    oldest = await redis.zrange(key, 0, 0, withscores=True)
    if oldest:
        retry_after = max(1, math.ceil(float(oldest[0][1]) + window.seconds - now))
    else:
        retry_after = window.seconds
    return WindowResult(allowed=False, count=count - 1, remaining=0, retry_after=retry_after)


async def enforce(
    redis: aioredis.Redis | None,
    action: str,
    subject: str,
    windows: Sequence[Window],
    now: float | None = None,
) -> None:
    """Raise RateLimitError on the first exceeded window for (action, subject)."""
    if redis is None:
        logger.warning("rate_limit_skipped", action=action, reason="redis not initialized")
        return

    for window in windows:
        if window.limit <= 0:
            continue
        result = await hit(redis, f"ratelimit:{action}:{subject}:{window.name}", window, now)
        if not result.allowed:
            logger.info(
                "rate_limit_exceeded",
                action=action,
                subject=subject,
                window=window.name,
                retry_after=result.retry_after,
            )
            raise RateLimitError(
                f"Too many {action.replace('_', ' ')} requests; at most {window.limit} per {window.name}. "
                f"Retry in {result.retry_after} seconds.",
                retry_after=result.retry_after,
                window=window.name,
            )
