"""Pydantic schemas for commission history."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel

from sellerpay.schemas.base import BaseResponseSchema


class CommissionHistoryResponse(BaseResponseSchema):
    """Schema for commission history response"""
    id: UUID
    order_id: str
    seller_id: UUID
    commission_rate: Decimal
    order_total: int
    commission_amount: int
    seller_payout: int
    status: str
    created_at: datetime
    updated_at: datetime


class CommissionHistoryList(BaseModel):
    """Schema for paginated commission history"""
    items: List[CommissionHistoryResponse]
    total_items: int


class SellerCommissionSummary(BaseModel):
    """Schema for a seller's commission summary"""
    seller_id: UUID
    total_commissions: int = 0
    total_payouts: int = 0
    total_orders: int = 0
    commissions_by_status: Dict[str, int]
