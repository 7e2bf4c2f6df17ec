"""
Commission History API Endpoints
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from sellerpay.api.deps import DB
from sellerpay.schemas.commission_history import (
    CommissionHistoryList,
    CommissionHistoryResponse,
    SellerCommissionSummary,
)
from sellerpay.services.commission_history_service import CommissionHistoryService


router = APIRouter(prefix="/sellers/{seller_id}", tags=["Commission History"])


@router.get("/commission-history", response_model=CommissionHistoryList)
async def get_commission_history(
    seller_id: UUID,
    db: DB,
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=1, le=100),
    order_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="CALCULATED, PAID or REFUNDED"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    """Get commission history for a seller, newest first."""
    items, total = await CommissionHistoryService(db).get_commission_history(
        seller_id,
        skip=skip,
        take=take,
        order_id=order_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return CommissionHistoryList(
        items=[CommissionHistoryResponse.model_validate(h) for h in items],
        total_items=total,
    )


@router.get("/commission-summary", response_model=SellerCommissionSummary)
async def get_commission_summary(
    seller_id: UUID,
    db: DB,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    summary = await CommissionHistoryService(db).get_seller_commission_summary(
        seller_id, start_date=start_date, end_date=end_date
    )
    return SellerCommissionSummary(**summary)
