"""Admin payout review."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from watchearn.auth.dependencies import CurrentUser, require_admin
from watchearn.database import get_session
from watchearn.wallet import service
from watchearn.wallet.schemas import (
    AdminWithdrawalListResponse,
    AdminWithdrawalResponse,
    PaymentDetailsResponse,
    WithdrawalStatusRequest,
)

router = APIRouter(prefix="/api/v1/admin/withdrawals", tags=["Admin"])


@router.get("", response_model=AdminWithdrawalListResponse)
async def admin_list_withdrawals(
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminWithdrawalListResponse:
    withdrawals, total = await service.list_withdrawals(db, status, page, per_page)
    return AdminWithdrawalListResponse(
        withdrawals=[AdminWithdrawalResponse.model_validate(w) for w in withdrawals],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/{withdrawal_id}/status", response_model=AdminWithdrawalResponse)
async def admin_set_status(
    withdrawal_id: str,
    body: WithdrawalStatusRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminWithdrawalResponse:
    withdrawal = await service.set_withdrawal_status(db, admin, withdrawal_id, body.status, body.admin_notes)
    return AdminWithdrawalResponse.model_validate(withdrawal)


@router.post("/{withdrawal_id}/decrypt", response_model=PaymentDetailsResponse)
async def admin_decrypt_payment_details(
    withdrawal_id: str,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> PaymentDetailsResponse:
    """Reveal payment details for a payout. Audited."""
    plaintext = await service.reveal_payment_details(db, admin, withdrawal_id)
    withdrawal = await service.get_withdrawal(db, withdrawal_id)
    return PaymentDetailsResponse(
        withdrawal_id=withdrawal.id,
        payment_method=withdrawal.payment_method,
        payment_details=plaintext,
    )
