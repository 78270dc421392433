"""Test helpers shared across the unit, service and API suites."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.auth.jwt import create_access_token
from watchearn.db.models import Ad, Profile, Withdrawal
from watchearn.wallet.crypto import encrypt_payment_details

USER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_USER_ID = "22222222-2222-4222-8222-222222222222"
ADMIN_ID = "99999999-9999-4999-8999-999999999999"


def auth_headers(user_id: str = USER_ID, email: str | None = "viewer@example.com") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, email)}"}


async def make_ad(db: AsyncSession, **overrides: object) -> Ad:
    """Insert an active 30-second ad paying 0.50 unless overridden."""
    now = datetime.now(timezone.utc)
    values: dict[str, object] = {
        "title": "Test ad",
        "ad_type": "video",
        "video_url": "https://cdn.example.com/ad.mp4",
        "duration": 30,
        "reward_amount": Decimal("0.50"),
        "is_active": True,
        "placement": ["watch_page"],
        "priority": 0,
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    ad = Ad(**values)
    db.add(ad)
    await db.commit()
    await db.refresh(ad)
    return ad


async def make_profile(db: AsyncSession, user_id: str = USER_ID, **overrides: object) -> Profile:
    """Insert a profile row directly, bypassing the ledger."""
    now = datetime.now(timezone.utc)
    values: dict[str, object] = {
        "user_id": user_id,
        "total_earnings": Decimal("0"),
        "total_watch_time": 0,
        "ads_watched": 0,
        "current_streak": 0,
        "longest_streak": 0,
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    profile = Profile(**values)
    db.add(profile)
    await db.commit()
    return profile


async def make_withdrawal(
    db: AsyncSession, user_id: str = USER_ID, amount: str = "10", status: str = "pending"
) -> Withdrawal:
    withdrawal = Withdrawal(
        user_id=user_id,
        amount=Decimal(amount),
        status=status,
        payment_method="upi",
        payment_details=encrypt_payment_details("viewer@upi"),
        created_at=datetime.now(timezone.utc),
    )
    db.add(withdrawal)
    await db.commit()
    return withdrawal
