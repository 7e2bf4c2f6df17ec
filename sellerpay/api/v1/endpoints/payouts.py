"""
Seller Payout API Endpoints

Seller-facing payout views and release requests:
- Payout history and pending balance
- Threshold check and release request (HOLD -> PENDING)
- Per-status summary
"""

from uuid import UUID

from fastapi import APIRouter, Query

from sellerpay.api.deps import DB
from sellerpay.config import settings
from sellerpay.models.payout import PayoutStatus
from sellerpay.schemas.payout import (
    CanRequestPayoutResponse,
    PayoutList,
    PayoutReleaseRequest,
    PayoutReleaseResponse,
    PayoutResponse,
    PayoutSummary,
    PendingTotalResponse,
)
from sellerpay.services.payout_ledger_service import PayoutLedgerService


router = APIRouter(prefix="/sellers/{seller_id}/payouts", tags=["Seller Payouts"])


@router.get("", response_model=PayoutList)
async def get_seller_payouts(seller_id: UUID, db: DB):
    """Get payout history for a seller, newest first."""
    payouts = await PayoutLedgerService(db).get_payouts_for_seller(seller_id)
    return PayoutList(
        items=[PayoutResponse.model_validate(p) for p in payouts],
        total=len(payouts),
    )


@router.get("/pending-total", response_model=PendingTotalResponse)
async def get_pending_total(seller_id: UUID, db: DB):
    """HOLD + PENDING total for a seller."""
    total = await PayoutLedgerService(db).get_pending_total(seller_id)
    return PendingTotalResponse(seller_id=seller_id, pending_total=total)


@router.get("/can-request", response_model=CanRequestPayoutResponse)
async def can_request_payout(
    seller_id: UUID,
    db: DB,
    minimum_threshold: int = Query(settings.DEFAULT_MINIMUM_PAYOUT_THRESHOLD, ge=0),
):
    """True if HOLD + PENDING meets the threshold (equality succeeds)."""
    service = PayoutLedgerService(db)
    can_request = await service.can_request_payout(seller_id, minimum_threshold)
    pending_total = await service.get_pending_total(seller_id)
    return CanRequestPayoutResponse(
        seller_id=seller_id,
        minimum_threshold=minimum_threshold,
        pending_total=pending_total,
        can_request=can_request,
    )


@router.post("/request", response_model=PayoutReleaseResponse)
async def request_payout(
    seller_id: UUID,
    request: PayoutReleaseRequest,
    db: DB,
):
    """
    Release all HOLD payouts to PENDING.

    Fails with 422 if the HOLD total is below minimum_threshold or nothing
    is in HOLD.
    """
    payouts = await PayoutLedgerService(db).request_release(seller_id, request.minimum_threshold)
    return PayoutReleaseResponse(
        seller_id=seller_id,
        amount=sum(p.amount for p in payouts),
        status=PayoutStatus.PENDING.value,
        payouts=[PayoutResponse.model_validate(p) for p in payouts],
    )


@router.get("/summary", response_model=PayoutSummary)
async def get_payout_summary(seller_id: UUID, db: DB):
    summary = await PayoutLedgerService(db).get_payout_summary(seller_id)
    return PayoutSummary(**summary)
