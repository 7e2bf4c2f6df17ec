"""
Admin Payout API Endpoints

Review queue for released payouts: approve (-> COMPLETED) or reject
(-> FAILED with reason).
"""

from uuid import UUID

from fastapi import APIRouter

from sellerpay.api.deps import DB
from sellerpay.schemas.payout import PayoutList, PayoutRejectRequest, PayoutResponse
from sellerpay.services.payout_ledger_service import PayoutLedgerService


router = APIRouter(prefix="/admin/payouts", tags=["Admin Payouts"])


@router.get("/pending", response_model=PayoutList)
async def get_pending_payouts(db: DB):
    """PENDING and PROCESSING payouts awaiting review, newest first."""
    payouts = await PayoutLedgerService(db).get_pending_payouts()
    return PayoutList(
        items=[PayoutResponse.model_validate(p) for p in payouts],
        total=len(payouts),
    )


@router.post("/{payout_id}/approve", response_model=PayoutResponse)
async def approve_payout(payout_id: UUID, db: DB):
    payout = await PayoutLedgerService(db).approve(payout_id)
    return PayoutResponse.model_validate(payout)


@router.post("/{payout_id}/reject", response_model=PayoutResponse)
async def reject_payout(
    payout_id: UUID,
    request: PayoutRejectRequest,
    db: DB,
):
    payout = await PayoutLedgerService(db).reject(payout_id, request.reason)
    return PayoutResponse.model_validate(payout)
