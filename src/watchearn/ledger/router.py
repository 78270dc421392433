"""Watch-event submission and ledger history."""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.auth.dependencies import CurrentUser, get_current_user
from watchearn.database import get_session
from watchearn.dependencies import get_redis_dep
from watchearn.ledger.schemas import (
    WatchEventRequest,
    WatchEventResponse,
    WatchHistoryEntry,
    WatchHistoryResponse,
)
from watchearn.ledger.service import list_watch_history, record_watch_event

router = APIRouter(prefix="/api/v1", tags=["Ledger"])


@router.post("/watch-events", response_model=WatchEventResponse, status_code=201)
async def submit_watch_event(
    body: WatchEventRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: aioredis.Redis | None = Depends(get_redis_dep),
) -> WatchEventResponse:
    """Credit a watch session. The response carries the server-computed amount and new balance."""
    result = await record_watch_event(
        db,
        redis,
        user.id,
        body.ad_id,
        body.watch_time_seconds,
        body.completed,
    )
    return WatchEventResponse(
        event_id=result.event_id,
        ad_id=result.ad_id,
        watch_time_seconds=result.watch_time_seconds,
        earned_amount=result.earned_amount,
        completed=result.completed,
        new_balance=result.total_earnings,
        ads_watched=result.ads_watched,
        current_streak=result.current_streak,
        longest_streak=result.longest_streak,
        last_streak_date=result.last_streak_date,
    )


@router.get("/users/me/watch-history", response_model=WatchHistoryResponse)
async def get_watch_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WatchHistoryResponse:
    rows, total = await list_watch_history(db, user.id, page, per_page)
    return WatchHistoryResponse(
        entries=[
            WatchHistoryEntry(
                id=event.id,
                ad_id=event.ad_id,
                ad_title=title,
                watch_time_seconds=event.watch_time,
                earned_amount=event.earned_amount,
                completed=event.completed,
                created_at=event.created_at,
            )
            for event, title in rows
        ],
        total=total,
        page=page,
        per_page=per_page,
    )
