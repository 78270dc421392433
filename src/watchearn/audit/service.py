"""Admin audit trail for sensitive actions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from watchearn.db.models import AdminAuditLog

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ACTION_DECRYPT_PAYMENT_DETAILS = "withdrawal.decrypt_payment_details"
ACTION_WITHDRAWAL_STATUS = "withdrawal.set_status"
ACTION_SETTINGS_UPDATE = "settings.update"
ACTION_PROFILE_REBUILD = "profile.rebuild"


async def write_audit_log(
    db: AsyncSession,
    actor_user_id: str,
    action: str,
    resource_type: str,
    resource_id: str | None = None,
    meta: dict[str, Any] | None = None,
) -> AdminAuditLog:
    """Stage an audit row in the caller's transaction. The caller commits."""
    entry = AdminAuditLog(
        actor_user_id=actor_user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        meta=meta or {},
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    logger.info(
        "admin_audit",
        actor=actor_user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
    )
    return entry


async def list_audit_log(
    db: AsyncSession,
    action: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[AdminAuditLog], int]:
    query = select(AdminAuditLog)
    count_query = select(func.count()).select_from(AdminAuditLog)
    if action is not None:
        query = query.where(AdminAuditLog.action == action)
        count_query = count_query.where(AdminAuditLog.action == action)

    total = await db.scalar(count_query)
    result = await db.execute(
        query.order_by(AdminAuditLog.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return list(result.scalars().all()), int(total or 0)
