"""Wallet summary and withdrawal requests for the signed-in user."""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.auth.dependencies import CurrentUser, get_current_user
from watchearn.database import get_session
from watchearn.dependencies import get_redis_dep
from watchearn.wallet import service
from watchearn.wallet.schemas import (
    WalletSummaryResponse,
    WithdrawalListResponse,
    WithdrawalRequest,
    WithdrawalResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Wallet"])


@router.get("/users/me/wallet", response_model=WalletSummaryResponse)
async def get_wallet(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WalletSummaryResponse:
    summary = await service.get_wallet_summary(db, user.id)
    return WalletSummaryResponse(
        total_earnings=summary.total_earnings,
        pending_amount=summary.pending_amount,
        approved_amount=summary.approved_amount,
        available_balance=summary.available_balance,
        today_earnings=summary.today_earnings,
        today_watch_time=summary.today_watch_time,
        min_withdrawal=summary.min_withdrawal,
        can_withdraw=summary.available_balance >= summary.min_withdrawal,
    )


@router.post("/withdrawals", response_model=WithdrawalResponse, status_code=201)
async def create_withdrawal(
    body: WithdrawalRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: aioredis.Redis | None = Depends(get_redis_dep),
) -> WithdrawalResponse:
    withdrawal = await service.request_withdrawal(
        db, redis, user.id, body.amount, body.payment_method, body.payment_details
    )
    return WithdrawalResponse.model_validate(withdrawal)


@router.get("/withdrawals", response_model=WithdrawalListResponse)
async def list_my_withdrawals(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WithdrawalListResponse:
    withdrawals = await service.list_user_withdrawals(db, user.id)
    return WithdrawalListResponse(withdrawals=[WithdrawalResponse.model_validate(w) for w in withdrawals])
