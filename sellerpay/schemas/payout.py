"""
Pydantic schemas for seller payouts.

Request/response schemas for:
- Payout history and pending totals (seller)
- Payout release requests (seller)
- Approval / rejection review queue (admin)
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sellerpay.schemas.base import BaseResponseSchema, BaseCreateSchema


class PayoutResponse(BaseResponseSchema):
    """Schema for payout response"""
    id: UUID
    seller_id: UUID
    order_id: str
    amount: int
    commission: int
    status: str
    released_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PayoutList(BaseModel):
    """Schema for payout list"""
    items: List[PayoutResponse]
    total: int


class PayoutReleaseRequest(BaseCreateSchema):
    """Seller request to release HOLD payouts"""
    minimum_threshold: int = Field(0, ge=0, description="Minimum HOLD total in cents")


class PayoutReleaseResponse(BaseModel):
    """Payouts moved from HOLD to PENDING"""
    seller_id: UUID
    amount: int = Field(..., description="Total released in cents")
    status: str
    payouts: List[PayoutResponse]


class PayoutRejectRequest(BaseCreateSchema):
    """Admin rejection of a payout"""
    reason: str = Field(..., description="Why the payout was rejected")


class PendingTotalResponse(BaseModel):
    """HOLD + PENDING total for a seller"""
    seller_id: UUID
    pending_total: int


class CanRequestPayoutResponse(BaseModel):
    seller_id: UUID
    minimum_threshold: int
    pending_total: int
    can_request: bool


class PayoutSummary(BaseModel):
    """Payout amounts per status for a seller"""
    seller_id: UUID
    total_by_status: Dict[str, int]
    count_by_status: Dict[str, int]
    pending_total: int
    lifetime_paid: int
