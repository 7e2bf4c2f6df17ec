"""
Commission History Service

Audit trail of commission calculations, one row per (order, seller):
- Records the rate applied and the resulting split
- Paginated history for seller dashboards
- Commission summaries over a date range
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sellerpay.core.enum_utils import get_enum_value, to_enum
from sellerpay.core.exceptions import PayoutValidationError, SplitIntegrityError
from sellerpay.models.commission_history import CommissionHistory, CommissionHistoryStatus
from sellerpay.schemas.split import SplitResult
from sellerpay.services.commission_service import RateLike, validate_commission_rate

logger = logging.getLogger(__name__)


class CommissionHistoryService:
    """Service for commission history records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_order_and_seller(
        self,
        order_id: str,
        seller_id: uuid.UUID,
    ) -> Optional[CommissionHistory]:
        result = await self.db.execute(
            select(CommissionHistory).where(
                and_(
                    CommissionHistory.order_id == str(order_id),
                    CommissionHistory.seller_id == seller_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def create_commission_history(
        self,
        order_id: str,
        seller_id: uuid.UUID,
        commission_rate: RateLike,
        order_total: int,
        commission_amount: int,
        seller_payout: int,
        status: Union[CommissionHistoryStatus, str] = CommissionHistoryStatus.CALCULATED,
    ) -> CommissionHistory:
        """
        Record a commission calculation.

        Returns the existing record if one is already stored for the order
        and seller.

        Raises:
            SplitIntegrityError: commission_amount + seller_payout != order_total
        """
        if commission_amount + seller_payout != order_total:
            raise SplitIntegrityError(
                f"Commission history does not reconcile: {commission_amount} + "
                f"{seller_payout} != {order_total}",
                details={
                    "order_id": str(order_id),
                    "seller_id": str(seller_id),
                    "commission_amount": commission_amount,
                    "seller_payout": seller_payout,
                    "order_total": order_total,
                },
            )
        rate = validate_commission_rate(commission_rate)

        existing = await self.get_by_order_and_seller(order_id, seller_id)
        if existing:
            return existing

        history = CommissionHistory(
            order_id=str(order_id),
            seller_id=seller_id,
            commission_rate=rate,
            order_total=order_total,
            commission_amount=commission_amount,
            seller_payout=seller_payout,
            status=get_enum_value(status),
        )
        self.db.add(history)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.get_by_order_and_seller(order_id, seller_id)
            if existing is None:
                raise
            logger.info(f"Commission history for order {order_id} seller {seller_id} already recorded")
            return existing

        await self.db.refresh(history)
        return history

    async def record_split(self, split_result: SplitResult) -> List[CommissionHistory]:
        """Record one commission history row per seller split."""
        records = []
        for split in split_result.seller_splits:
            if split.commission_rate is None:
                raise SplitIntegrityError(
                    f"Seller split for {split.seller_id} carries no commission rate",
                    details={"order_id": split_result.order_id, "seller_id": str(split.seller_id)},
                )
            records.append(
                await self.create_commission_history(
                    order_id=split_result.order_id,
                    seller_id=split.seller_id,
                    commission_rate=split.commission_rate,
                    order_total=split.line_total,
                    commission_amount=split.commission,
                    seller_payout=split.amount,
                )
            )

        logger.info(
            f"Recorded commission history for order {split_result.order_id}: {len(records)} sellers"
        )
        return records

    async def get_commission_history(
        self,
        seller_id: uuid.UUID,
        skip: int = 0,
        take: int = 20,
        order_id: Optional[str] = None,
        status: Optional[Union[CommissionHistoryStatus, str]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[CommissionHistory], int]:
        """Get commission history for a seller, newest first."""
        filters = [CommissionHistory.seller_id == seller_id]
        if order_id:
            filters.append(CommissionHistory.order_id == str(order_id))
        if status:
            status_enum = to_enum(status, CommissionHistoryStatus)
            if status_enum is None:
                raise PayoutValidationError(
                    f"Invalid commission status: {status}",
                    details={"valid_statuses": [s.value for s in CommissionHistoryStatus]},
                )
            filters.append(CommissionHistory.status == status_enum.value)
        if start_date:
            filters.append(CommissionHistory.created_at >= start_date)
        if end_date:
            filters.append(CommissionHistory.created_at <= end_date)

        count_result = await self.db.execute(
            select(func.count(CommissionHistory.id)).where(and_(*filters))
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(
            select(CommissionHistory)
            .where(and_(*filters))
            .order_by(CommissionHistory.created_at.desc())
            .offset(skip)
            .limit(take)
        )
        return list(result.scalars().all()), total

    async def get_seller_commission_summary(
        self,
        seller_id: uuid.UUID,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> dict:
        """Totals of commissions, payouts and orders for a seller."""
        filters = [CommissionHistory.seller_id == seller_id]
        if start_date:
            filters.append(CommissionHistory.created_at >= start_date)
        if end_date:
            filters.append(CommissionHistory.created_at <= end_date)

        totals = await self.db.execute(
            select(
                func.coalesce(func.sum(CommissionHistory.commission_amount), 0),
                func.coalesce(func.sum(CommissionHistory.seller_payout), 0),
                func.count(func.distinct(CommissionHistory.order_id)),
            ).where(and_(*filters))
        )
        total_commissions, total_payouts, total_orders = totals.one()

        by_status = await self.db.execute(
            select(
                CommissionHistory.status,
                func.coalesce(func.sum(CommissionHistory.commission_amount), 0),
            )
            .where(and_(*filters))
            .group_by(CommissionHistory.status)
        )
        commissions_by_status = {s.value: 0 for s in CommissionHistoryStatus}
        for status, amount in by_status.all():
            commissions_by_status[status] = int(amount or 0)

        return {
            "seller_id": seller_id,
            "total_commissions": int(total_commissions or 0),
            "total_payouts": int(total_payouts or 0),
            "total_orders": int(total_orders or 0),
            "commissions_by_status": commissions_by_status,
        }
