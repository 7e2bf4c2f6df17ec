"""
Order input schemas.

Orders are owned by the storefront. The payout core receives a read-only
snapshot when an order is paid: its total and its lines, each line carrying
an optional owning seller.
"""

from typing import List, Optional
from uuid import UUID

from pydantic import Field

from sellerpay.schemas.base import BaseCreateSchema


class OrderLineInput(BaseCreateSchema):
    """Order line as seen by the split calculator."""
    id: str = Field(..., min_length=1, max_length=100)
    price: int = Field(..., ge=0, description="Line price in cents (after discounts, incl. tax)")
    seller_id: Optional[UUID] = Field(None, description="Owning seller, None for platform-owned items")


class OrderPaidNotification(BaseCreateSchema):
    """Order paid notification (order placed / payment settled)."""
    id: str = Field(..., min_length=1, max_length=100)
    total: int = Field(..., ge=0, description="Order grand total in cents")
    lines: List[OrderLineInput] = Field(default_factory=list)

    @property
    def seller_lines(self) -> List[OrderLineInput]:
        return [line for line in self.lines if line.seller_id is not None]
