"""
Order Payment API Endpoints

Receives order-paid notifications from the storefront and turns them into
seller payouts held in escrow.
"""

from typing import Optional

from fastapi import APIRouter

from sellerpay.api.deps import DB
from sellerpay.schemas.order import OrderPaidNotification
from sellerpay.schemas.split import SplitResult
from sellerpay.services.order_payment_service import OrderPaymentService


router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("/paid", response_model=Optional[SplitResult])
async def order_paid(
    order: OrderPaidNotification,
    db: DB,
):
    """
    Process an order-paid notification.

    Returns the split, or null if the order has no seller lines or was
    already processed.
    """
    service = OrderPaymentService(db)
    return await service.handle_order_paid(order)
