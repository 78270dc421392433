"""Role lookups against the local `user_roles` projection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from watchearn.db.models import UserRole

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ADMIN_ROLE = "admin"


async def is_admin(db: AsyncSession, user_id: str) -> bool:
    """True when `user_id` holds the admin role."""
    result = await db.execute(
        select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role == ADMIN_ROLE)
    )
    return result.first() is not None


async def grant_role(db: AsyncSession, user_id: str, role: str) -> UserRole:
    """Grant `role` to `user_id` if not already held. Caller commits."""
    result = await db.execute(select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role))
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing

    grant = UserRole(user_id=user_id, role=role)
    db.add(grant)
    await db.flush()
    logger.info("role_granted", user_id=user_id, role=role)
    return grant
