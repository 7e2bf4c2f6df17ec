# Services module
from sellerpay.services.commission_service import CommissionRateResolver
from sellerpay.services.split_payment_service import SplitPaymentCalculator
from sellerpay.services.payout_ledger_service import PayoutLedgerService, PayoutCreateResult
from sellerpay.services.order_payment_service import OrderPaymentService
from sellerpay.services.commission_history_service import CommissionHistoryService

__all__ = [
    "CommissionRateResolver",
    "SplitPaymentCalculator",
    "PayoutLedgerService",
    "PayoutCreateResult",
    "OrderPaymentService",
    "CommissionHistoryService",
]
