"""Per-user serialization of ledger writes within one process.

Across processes the profile row lock (SELECT ... FOR UPDATE) does the same
job; this lock keeps same-process writers from queueing inside the database.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from weakref import WeakValueDictionary

from watchearn.config import get_settings
from watchearn.errors import StateConflictError

_locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()


def _lock_for(user_id: str) -> asyncio.Lock:
    lock = _locks.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _locks[user_id] = lock
    return lock


@asynccontextmanager
async def user_ledger_lock(user_id: str, timeout: float | None = None) -> AsyncIterator[None]:
    """Hold the ledger lock for `user_id`; a wait longer than `timeout` is a StateConflictError."""
    if timeout is None:
        timeout = get_settings().ledger_lock_timeout_seconds
    lock = _lock_for(user_id)
    try:
        await asyncio.wait_for(lock.acquire(), timeout)
    except asyncio.TimeoutError:
        raise StateConflictError(
            "Another ledger operation for this user is in progress; try again",
            user_id=user_id,
        ) from None
    try:
        yield
    finally:
        lock.release()
