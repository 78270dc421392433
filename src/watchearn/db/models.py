"""ORM models for ads, the watch ledger, profiles, withdrawals and settings.

`watch_history` is the append-only ledger. `profiles` is a cached projection
of it, rebuilt by `watchearn.ledger.reconcile` when it drifts.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from watchearn.db.base import Base

# Money columns: 6 decimal places so sub-paisa partial rewards are not lost.
Money = Numeric(14, 6)


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Ad inventory
# ---------------------------------------------------------------------------


class Ad(Base):
    """Server-authoritative ad metadata. Crediting always reads this row."""

    __tablename__ = "ads"
    __table_args__ = (
        CheckConstraint("duration > 0", name="duration_positive"),
        CheckConstraint("reward_amount >= 0", name="reward_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ad_type: Mapped[str] = mapped_column(String(16), nullable=False, default="video")
    video_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    link_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    placement: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=lambda: ["watch_page"])
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Ledger + aggregate
# ---------------------------------------------------------------------------


class Profile(Base):
    """Per-user aggregate of the watch ledger plus streak state."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("total_earnings >= 0", name="earnings_non_negative"),
        CheckConstraint("total_watch_time >= 0", name="watch_time_non_negative"),
        CheckConstraint("ads_watched >= 0", name="ads_watched_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_earnings: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    total_watch_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ads_watched: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_streak_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    watch_events: Mapped[list[WatchEvent]] = relationship("WatchEvent", back_populates="profile")
    withdrawals: Mapped[list[Withdrawal]] = relationship("Withdrawal", back_populates="profile")


class WatchEvent(Base):
    """Append-only ledger entry, one per finished or collected session."""

    __tablename__ = "watch_history"
    __table_args__ = (
        CheckConstraint("watch_time >= 0", name="watch_time_non_negative"),
        CheckConstraint("earned_amount >= 0", name="earned_non_negative"),
        Index("ix_watch_history_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    ad_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("ads.id", ondelete="SET NULL"), nullable=True)
    watch_time: Mapped[int] = mapped_column(Integer, nullable=False)
    earned_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    profile: Mapped[Profile] = relationship("Profile", back_populates="watch_events")


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


class Withdrawal(Base):
    """Cash-out request. `payment_details` holds a Fernet token, never plaintext."""

    __tablename__ = "withdrawals"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="status_valid"),
        Index("ix_withdrawals_user_status", "user_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)
    payment_details: Mapped[str] = mapped_column(Text, nullable=False)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    profile: Mapped[Profile] = relationship("Profile", back_populates="withdrawals")


# ---------------------------------------------------------------------------
# Identity projection, configuration, audit
# ---------------------------------------------------------------------------


class UserRole(Base):
    """Role grants mirrored from the identity provider."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user")


class AppSetting(Base):
    """Admin-editable key/value configuration read by the core as plain values."""

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AdminAuditLog(Base):
    """Record of sensitive admin actions (payment-detail decryption, payout decisions)."""

    __tablename__ = "admin_audit_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    actor_user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(32), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    meta: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
