"""Wallet balance, withdrawal requests and the admin payout workflow.

Balance is never stored on its own: it is the ledger-backed profile total
minus every withdrawal that is still pending or already approved. Rejected
withdrawals release their amount again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from watchearn.appsettings.service import get_min_withdrawal
from watchearn.audit.service import (
    ACTION_DECRYPT_PAYMENT_DETAILS,
    ACTION_WITHDRAWAL_STATUS,
    write_audit_log,
)
from watchearn.config import get_settings
from watchearn.db.models import Profile, Withdrawal
from watchearn.earnings import sum_to_money, to_money
from watchearn.errors import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from watchearn.ledger.locks import user_ledger_lock
from watchearn.ledger.service import ledger_totals_since, lock_profile
from watchearn.ratelimit import Window, enforce
from watchearn.streaks.engine import day_start_utc, platform_today
from watchearn.wallet import crypto

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

    from watchearn.auth.dependencies import CurrentUser

logger = structlog.get_logger()

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

VALID_TRANSITIONS: dict[str, set[str]] = {
    PENDING: {APPROVED, REJECTED},
    APPROVED: set(),
    REJECTED: set(),
}


@dataclass(frozen=True)
class WalletSummary:
    total_earnings: Decimal
    pending_amount: Decimal
    approved_amount: Decimal
    available_balance: Decimal
    today_earnings: Decimal
    today_watch_time: int
    min_withdrawal: Decimal


def _require_admin(actor: CurrentUser) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Admin role required", user_id=actor.id)


async def withdrawal_totals(db: AsyncSession, user_id: str) -> dict[str, Decimal]:
    """Sum of withdrawal amounts per status for `user_id`."""
    result = await db.execute(
        select(Withdrawal.status, func.coalesce(func.sum(Withdrawal.amount), 0))
        .where(Withdrawal.user_id == user_id)
        .group_by(Withdrawal.status)
    )
    totals = {PENDING: sum_to_money(0), APPROVED: sum_to_money(0), REJECTED: sum_to_money(0)}
    for status, amount in result:
        totals[status] = sum_to_money(amount)
    return totals


def available_from(total_earnings: Decimal, totals: dict[str, Decimal]) -> Decimal:
    return to_money(total_earnings) - totals[PENDING] - totals[APPROVED]


async def get_wallet_summary(db: AsyncSession, user_id: str, now: datetime | None = None) -> WalletSummary:
    settings = get_settings()
    profile = await db.get(Profile, user_id)
    total = to_money(profile.total_earnings) if profile is not None else sum_to_money(0)
    totals = await withdrawal_totals(db, user_id)

    today = platform_today(now, settings.platform_timezone)
    today_earned, today_watch_time = await ledger_totals_since(
        db, user_id, day_start_utc(today, settings.platform_timezone)
    )
    return WalletSummary(
        total_earnings=total,
        pending_amount=totals[PENDING],
        approved_amount=totals[APPROVED],
        available_balance=available_from(total, totals),
        today_earnings=today_earned,
        today_watch_time=today_watch_time,
        min_withdrawal=await get_min_withdrawal(db),
    )


async def request_withdrawal(
    db: AsyncSession,
    redis: aioredis.Redis | None,
    user_id: str,
    amount: Decimal,
    payment_method: str,
    payment_details: str,
    *,
    now: datetime | None = None,
) -> Withdrawal:
    """Create a pending withdrawal after checking the minimum and the available balance.

    The balance check and the insert happen under the user's ledger lock, so
    concurrent requests cannot both spend the same balance.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Withdrawal amount must be greater than 0", amount=str(amount))
    if not payment_method.strip() or not payment_details.strip():
        raise ValidationError("Payment method and payment details are required")

    await enforce(
        redis,
        "withdrawal",
        user_id,
        [Window(name="day", limit=get_settings().withdrawal_requests_per_day, seconds=86400)],
    )
    token = crypto.encrypt_payment_details(payment_details.strip())

    async with user_ledger_lock(user_id):
        try:
            minimum = await get_min_withdrawal(db)
            if amount < minimum:
                raise ValidationError(
                    f"Minimum withdrawal amount is {minimum}",
                    amount=str(amount),
                    min_withdrawal=str(minimum),
                )

            profile = await lock_profile(db, user_id)
            available = available_from(profile.total_earnings, await withdrawal_totals(db, user_id))
            if amount > available:
                raise InsufficientBalanceError(
                    f"Requested {amount} exceeds available balance {available}",
                    amount=str(amount),
                    available_balance=str(available),
                )

            withdrawal = Withdrawal(
                user_id=user_id,
                amount=amount,
                status=PENDING,
                payment_method=payment_method.strip(),
                payment_details=token,
                created_at=now,
            )
            db.add(withdrawal)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info(
        "withdrawal_requested",
        user_id=user_id,
        withdrawal_id=withdrawal.id,
        amount=str(amount),
        payment_method=withdrawal.payment_method,
    )
    return withdrawal


async def list_user_withdrawals(db: AsyncSession, user_id: str) -> list[Withdrawal]:
    result = await db.execute(
        select(Withdrawal).where(Withdrawal.user_id == user_id).order_by(Withdrawal.created_at.desc())
    )
    return list(result.scalars().all())


async def list_withdrawals(
    db: AsyncSession,
    status: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Withdrawal], int]:
    """Admin listing. Payment details stay encrypted."""
    query = select(Withdrawal)
    count_query = select(func.count()).select_from(Withdrawal)
    if status is not None:
        if status not in VALID_TRANSITIONS:
            raise ValidationError(f"Unknown withdrawal status '{status}'", status=status)
        query = query.where(Withdrawal.status == status)
        count_query = count_query.where(Withdrawal.status == status)

    total = await db.scalar(count_query)
    result = await db.execute(
        query.order_by(Withdrawal.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return list(result.scalars().all()), int(total or 0)


async def get_withdrawal(db: AsyncSession, withdrawal_id: str) -> Withdrawal:
    withdrawal = await db.get(Withdrawal, withdrawal_id)
    if withdrawal is None:
        raise NotFoundError(f"Withdrawal {withdrawal_id} not found", withdrawal_id=withdrawal_id)
    return withdrawal


async def _get_withdrawal_for_update(db: AsyncSession, withdrawal_id: str) -> Withdrawal:
    result = await db.execute(
        select(Withdrawal)
        .where(Withdrawal.id == withdrawal_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    withdrawal = result.scalar_one_or_none()
    if withdrawal is None:
        raise NotFoundError(f"Withdrawal {withdrawal_id} not found", withdrawal_id=withdrawal_id)
    return withdrawal


async def set_withdrawal_status(
    db: AsyncSession,
    actor: CurrentUser,
    withdrawal_id: str,
    status: str,
    admin_notes: str | None = None,
    *,
    now: datetime | None = None,
) -> Withdrawal:
    """Approve or reject a pending withdrawal. Terminal states never change again.

    No balance is touched: approved amounts stay excluded from the available
    balance, rejected ones are released by no longer being pending.
    """
    _require_admin(actor)
    if status not in (APPROVED, REJECTED):
        raise ValidationError(f"Status must be '{APPROVED}' or '{REJECTED}'", status=status)
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        withdrawal = await _get_withdrawal_for_update(db, withdrawal_id)
        if status not in VALID_TRANSITIONS[withdrawal.status]:
            raise StateConflictError(
                f"Withdrawal {withdrawal_id} is already {withdrawal.status}",
                withdrawal_id=withdrawal_id,
                current_status=withdrawal.status,
            )
        previous = withdrawal.status
        withdrawal.status = status
        withdrawal.processed_at = now
        if admin_notes is not None:
            withdrawal.admin_notes = admin_notes
        await write_audit_log(
            db,
            actor.id,
            ACTION_WITHDRAWAL_STATUS,
            "withdrawal",
            withdrawal.id,
            {"from": previous, "to": status, "amount": str(withdrawal.amount), "user_id": withdrawal.user_id},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "withdrawal_status_changed",
        withdrawal_id=withdrawal.id,
        user_id=withdrawal.user_id,
        status=status,
        admin=actor.id,
    )
    return withdrawal


async def reveal_payment_details(db: AsyncSession, actor: CurrentUser, withdrawal_id: str) -> str:
    """Decrypt payment details for a payout. Every call is audited."""
    _require_admin(actor)
    withdrawal = await get_withdrawal(db, withdrawal_id)

    plaintext = crypto.decrypt_payment_details(withdrawal.payment_details)
    try:
        await write_audit_log(
            db,
            actor.id,
            ACTION_DECRYPT_PAYMENT_DETAILS,
            "withdrawal",
            withdrawal.id,
            {"user_id": withdrawal.user_id},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.warning("payment_details_decrypted", withdrawal_id=withdrawal.id, admin=actor.id)
    return plaintext
