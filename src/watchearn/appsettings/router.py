"""Public site settings, page snippets and the admin settings editor."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.appsettings import service
from watchearn.auth.dependencies import CurrentUser, require_admin
from watchearn.database import get_session

router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])
admin_router = APIRouter(prefix="/api/v1/admin/settings", tags=["Admin"])


class SnippetResponse(BaseModel):
    key: str
    region: str
    content: str


class SettingsUpdateRequest(BaseModel):
    settings: dict[str, str]


class SettingsResponse(BaseModel):
    settings: dict[str, Any]


@router.get("/public", response_model=SettingsResponse)
async def public_settings(db: AsyncSession = Depends(get_session)) -> SettingsResponse:
    return SettingsResponse(settings=await service.get_public_settings(db))


@router.get("/snippets/{key}", response_model=SnippetResponse)
async def get_snippet(key: str, db: AsyncSession = Depends(get_session)) -> SnippetResponse:
    """Script markup for a page region, returned verbatim."""
    return SnippetResponse(**await service.get_snippet(db, key))


@admin_router.get("", response_model=SettingsResponse)
async def admin_get_settings(
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    return SettingsResponse(settings=await service.get_all_settings(db))


@admin_router.put("", response_model=SettingsResponse)
async def admin_update_settings(
    body: SettingsUpdateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    return SettingsResponse(settings=await service.update_settings(db, admin.id, body.settings))
