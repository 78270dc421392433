"""Admin audit log listing."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.audit.service import list_audit_log
from watchearn.auth.dependencies import CurrentUser, require_admin
from watchearn.database import get_session

router = APIRouter(prefix="/api/v1/admin/audit-log", tags=["Admin"])


class AuditLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    actor_user_id: str
    action: str
    resource_type: str
    resource_id: str | None = None
    meta: dict[str, Any] = {}
    created_at: datetime


class AuditLogResponse(BaseModel):
    entries: list[AuditLogEntry]
    total: int
    page: int
    per_page: int


@router.get("", response_model=AuditLogResponse)
async def get_audit_log(
    action: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AuditLogResponse:
    entries, total = await list_audit_log(db, action, page, per_page)
    return AuditLogResponse(
        entries=[AuditLogEntry.model_validate(e) for e in entries],
        total=total,
        page=page,
        per_page=per_page,
    )
