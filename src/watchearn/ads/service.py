"""Ad inventory: public listing and admin CRUD."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from watchearn.db.models import Ad, WatchEvent
from watchearn.earnings import to_money
from watchearn.errors import NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from watchearn.ads.schemas import AdCreateRequest, AdUpdateRequest

logger = structlog.get_logger()


async def list_active_ads(db: AsyncSession, placement: str | None = None) -> list[Ad]:
    """Active ads, highest priority first, optionally restricted to one placement tag."""
    result = await db.execute(
        select(Ad)
        .where(Ad.is_active.is_(True))
        .order_by(Ad.priority.desc(), Ad.created_at.desc())
    )
    ads = list(result.scalars().all())
    if placement is not None:
        # placement is a JSON array; filtering here keeps the query portable
        ads = [ad for ad in ads if placement in (ad.placement or [])]
    return ads


async def list_all_ads(db: AsyncSession) -> list[Ad]:
    result = await db.execute(select(Ad).order_by(Ad.priority.desc(), Ad.created_at.desc()))
    return list(result.scalars().all())


async def get_ad(db: AsyncSession, ad_id: str) -> Ad:
    ad = await db.get(Ad, ad_id)
    if ad is None:
        raise NotFoundError(f"Ad {ad_id} not found", ad_id=ad_id)
    return ad


async def create_ad(db: AsyncSession, data: AdCreateRequest) -> Ad:
    now = datetime.now(timezone.utc)
    ad = Ad(
        title=data.title,
        description=data.description,
        ad_type=data.ad_type,
        video_url=data.video_url,
        image_url=data.image_url or None,
        link_url=data.link_url or None,
        duration=data.duration,
        reward_amount=to_money(data.reward_amount),
        is_active=data.is_active,
        placement=data.placement,
        priority=data.priority,
        created_at=now,
        updated_at=now,
    )
    db.add(ad)
    await db.commit()
    await db.refresh(ad)
    logger.info("ad_created", ad_id=ad.id, title=ad.title, reward_amount=str(ad.reward_amount))
    return ad


async def update_ad(db: AsyncSession, ad_id: str, data: AdUpdateRequest) -> Ad:
    """Apply the fields present in `data`. Existing ledger rows keep their earned amounts."""
    ad = await get_ad(db, ad_id)
    changes = data.model_dump(exclude_unset=True)
    if "reward_amount" in changes and changes["reward_amount"] is not None:
        changes["reward_amount"] = to_money(changes["reward_amount"])
    for field, value in changes.items():
        if value is None and field not in ("description", "image_url", "link_url"):
            continue
        setattr(ad, field, value)
    ad.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(ad)
    logger.info("ad_updated", ad_id=ad.id, fields=sorted(changes))
    return ad


async def set_active(db: AsyncSession, ad_id: str, is_active: bool) -> Ad:
    ad = await get_ad(db, ad_id)
    ad.is_active = is_active
    ad.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(ad)
    logger.info("ad_active_changed", ad_id=ad.id, is_active=is_active)
    return ad


async def delete_ad(db: AsyncSession, ad_id: str) -> None:
    """Delete an ad. Ledger rows survive with a null ad reference."""
    ad = await get_ad(db, ad_id)
    await db.execute(update(WatchEvent).where(WatchEvent.ad_id == ad_id).values(ad_id=None))
    await db.delete(ad)
    await db.commit()
    logger.info("ad_deleted", ad_id=ad_id)
