from fastapi import APIRouter

from sellerpay.api.v1.endpoints import (
    # Order intake
    orders,
    # Seller payouts
    payouts,
    commission_history,
    # Admin review
    admin_payouts,
)


api_router = APIRouter(prefix="/api/v1")

api_router.include_router(orders.router)
api_router.include_router(payouts.router)
api_router.include_router(commission_history.router)
api_router.include_router(admin_payouts.router)
