"""Split payment result schemas (computed, never persisted)."""

from decimal import Decimal
from typing import List, NamedTuple, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SplitAmounts(NamedTuple):
    """Commission and payout for a single amount."""
    commission: int
    payout: int


class SellerSplit(BaseModel):
    """One seller's share of an order."""
    seller_id: UUID
    amount: int = Field(..., description="Payout to the seller in cents")
    commission: int = Field(..., description="Commission withheld in cents")
    line_total: int = Field(..., description="Seller's line total in cents")
    commission_rate: Optional[Decimal] = Field(None, description="Rate actually applied")


class SplitResult(BaseModel):
    """Split of an order between the platform and its sellers."""
    order_id: str
    total_amount: int = Field(..., description="Order total in cents")
    commission: int = Field(0, description="Total commission in cents")
    seller_payout: int = Field(0, description="Total seller payout in cents")
    seller_splits: List[SellerSplit] = Field(default_factory=list)

    @property
    def seller_line_total(self) -> int:
        return sum(split.line_total for split in self.seller_splits)
