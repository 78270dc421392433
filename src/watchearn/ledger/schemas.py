"""Request/response schemas for watch-event endpoints."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class WatchEventRequest(BaseModel):
    """A finished or collected session as reported by the player.

    Only the watch time is trusted (within bounds); the amount is computed
    server-side and `completed` is cross-checked.
    """

    ad_id: str = Field(..., min_length=1, max_length=36)
    watch_time_seconds: int = Field(..., ge=0)
    completed: bool = False


class WatchEventResponse(BaseModel):
    accepted: bool = True
    event_id: str
    ad_id: str
    watch_time_seconds: int
    earned_amount: Decimal
    completed: bool
    new_balance: Decimal
    ads_watched: int
    current_streak: int
    longest_streak: int
    last_streak_date: date | None = None


class WatchHistoryEntry(BaseModel):
    id: str
    ad_id: str | None = None
    ad_title: str | None = None
    watch_time_seconds: int
    earned_amount: Decimal
    completed: bool
    created_at: datetime


class WatchHistoryResponse(BaseModel):
    entries: list[WatchHistoryEntry]
    total: int
    page: int
    per_page: int
