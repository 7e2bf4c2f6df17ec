# Models module - importing registers every table on Base.metadata
from sellerpay.models.seller import MarketplaceSeller
from sellerpay.models.payout import SellerPayout, PayoutStatus
from sellerpay.models.commission_history import CommissionHistory, CommissionHistoryStatus

__all__ = [
    "MarketplaceSeller",
    "SellerPayout",
    "PayoutStatus",
    "CommissionHistory",
    "CommissionHistoryStatus",
]
