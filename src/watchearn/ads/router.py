"""Ad endpoints: public listing and admin inventory management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.ads import service
from watchearn.ads.schemas import (
    PLACEMENTS,
    AdCreateRequest,
    AdListResponse,
    AdResponse,
    AdUpdateRequest,
    SetActiveRequest,
)
from watchearn.auth.dependencies import CurrentUser, require_admin
from watchearn.database import get_session
from watchearn.errors import ValidationError

router = APIRouter(prefix="/api/v1/ads", tags=["Ads"])
admin_router = APIRouter(prefix="/api/v1/admin/ads", tags=["Admin"])


@router.get("", response_model=AdListResponse)
async def list_ads(
    placement: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> AdListResponse:
    """Active ads for a placement, highest priority first."""
    if placement is not None and placement not in PLACEMENTS:
        raise ValidationError(f"Unknown placement '{placement}'", allowed=list(PLACEMENTS))
    ads = await service.list_active_ads(db, placement)
    return AdListResponse(ads=[AdResponse.model_validate(a) for a in ads], total=len(ads))


# ── Admin ──


@admin_router.get("", response_model=AdListResponse)
async def admin_list_ads(
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdListResponse:
    ads = await service.list_all_ads(db)
    return AdListResponse(ads=[AdResponse.model_validate(a) for a in ads], total=len(ads))


@admin_router.post("", response_model=AdResponse, status_code=201)
async def admin_create_ad(
    body: AdCreateRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdResponse:
    ad = await service.create_ad(db, body)
    return AdResponse.model_validate(ad)


@admin_router.patch("/{ad_id}", response_model=AdResponse)
async def admin_update_ad(
    ad_id: str,
    body: AdUpdateRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdResponse:
    ad = await service.update_ad(db, ad_id, body)
    return AdResponse.model_validate(ad)


@admin_router.post("/{ad_id}/active", response_model=AdResponse)
async def admin_set_active(
    ad_id: str,
    body: SetActiveRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdResponse:
    ad = await service.set_active(db, ad_id, body.is_active)
    return AdResponse.model_validate(ad)


@admin_router.delete("/{ad_id}", status_code=204)
async def admin_delete_ad(
    ad_id: str,
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await service.delete_ad(db, ad_id)
    return Response(status_code=204)
