"""
Order Payment Service

Entry point when an order is paid. For every seller with lines in the order:
1. Resolve the seller's commission rate
2. Split the seller's line total into commission and payout
3. Validate the split
4. Create the HOLD payouts (escrow until the seller requests release)

All payouts of an order are committed in one transaction, so an order is either
fully paid out or not at all. Notifications can arrive more than once and
concurrently. Idempotency rests on the (order_id, seller_id) unique constraint;
the has_payouts_for_order check is only a short-circuit.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sellerpay.schemas.order import OrderPaidNotification
from sellerpay.schemas.split import SplitResult
from sellerpay.services.commission_history_service import CommissionHistoryService
from sellerpay.services.commission_service import CommissionRateResolver
from sellerpay.services.payout_ledger_service import (
    PayoutEntry,
    PayoutLedgerService,
    is_duplicate_payout_error,
)
from sellerpay.services.split_payment_service import SplitPaymentCalculator

logger = logging.getLogger(__name__)


class OrderPaymentService:
    """Turns paid orders into seller payouts."""

    def __init__(
        self,
        db: AsyncSession,
        rate_resolver: Optional[CommissionRateResolver] = None,
        ledger: Optional[PayoutLedgerService] = None,
        calculator: Optional[SplitPaymentCalculator] = None,
        history: Optional[CommissionHistoryService] = None,
    ):
        self.db = db
        self.rate_resolver = rate_resolver or CommissionRateResolver(db)
        self.ledger = ledger or PayoutLedgerService(db)
        self.calculator = calculator or SplitPaymentCalculator()
        self.history = history or CommissionHistoryService(db)

    async def process_payment(self, order: OrderPaidNotification) -> Optional[SplitResult]:
        """
        Split a paid order and create HOLD payouts for its sellers.

        Returns None for orders without seller-owned lines; the ledger is not
        touched. SplitIntegrityError propagates.
        """
        seller_lines = order.seller_lines
        if not seller_lines:
            logger.debug(f"Order {order.id} has no seller lines, skipping payouts")
            return None

        seller_ids = [line.seller_id for line in seller_lines]
        rates = await self.rate_resolver.resolve_many(seller_ids)

        split_result = self.calculator.split_order(
            order,
            seller_rates=rates,
            default_rate=self.rate_resolver.default_rate,
        )
        self.calculator.validate(split_result)

        entries = []
        for split in split_result.seller_splits:
            if split.amount <= 0:
                # Rate of 100%: the platform keeps the whole line total
                logger.info(
                    f"Order {order.id} seller {split.seller_id}: payout is zero "
                    f"(commission {split.commission}), no payout created"
                )
                continue

            entries.append(
                PayoutEntry(seller_id=split.seller_id, amount=split.amount, commission=split.commission)
            )

        if entries:
            await self.ledger.create_for_order(order.id, entries)

        logger.info(
            f"Processed payment for order {order.id}: {len(split_result.seller_splits)} sellers, "
            f"commission={split_result.commission} payout={split_result.seller_payout}"
        )
        return split_result

    async def process_payment_idempotent(
        self,
        order: OrderPaidNotification,
    ) -> Optional[SplitResult]:
        """
        Process a payment at most once per order.

        Returns None if payouts already exist for the order, or if a duplicate
        (order, seller) insert escapes from the ledger.
        """
        if await self.ledger.has_payouts_for_order(order.id):
            logger.info(f"Payouts already exist for order {order.id}, skipping")
            return None

        try:
            return await self.process_payment(order)
        except IntegrityError as e:
            await self.db.rollback()
            if not is_duplicate_payout_error(e):
                raise
            logger.warning(
                f"Concurrent payout creation for order {order.id} detected, "
                f"treating as already processed: {e.orig}"
            )
            return None

    async def handle_order_paid(self, order: OrderPaidNotification) -> Optional[SplitResult]:
        """
        Handle an order-paid notification.

        Creates payouts and records commission history for each seller split.
        A failing history write is logged and does not undo the payouts.
        """
        split_result = await self.process_payment_idempotent(order)
        if split_result is None:
            return None

        try:
            await self.history.record_split(split_result)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to record commission history for order {order.id}: {e}")

        return split_result
