"""
Payout Ledger Service

Owns the seller_payouts table: creation of payout records and every status
transition.

    create             (order, seller) -> HOLD, idempotent
    create_for_order   all HOLD payouts of one order, one transaction
    request_release    HOLD -> PENDING for one seller, threshold-checked
    approve            PENDING | PROCESSING -> COMPLETED
    reject             PENDING | PROCESSING -> FAILED

CONCURRENCY:
    No in-process locks. Duplicate creation is prevented by the unique
    constraint on (order_id, seller_id): the losing insert is rolled back and
    the winning row is read back with bounded exponential backoff.
    create_for_order commits all payouts of an order together; a duplicate
    rolls the whole batch back and it is retried against the visible rows.
    request_release is a single conditional UPDATE, so the threshold check and
    the transition see the same set of HOLD rows. approve/reject are
    compare-and-set updates on one row.

PROCESSING is reserved for an external payout-execution worker; nothing in
this service moves a payout into it.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, NamedTuple, Optional, Union

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from sellerpay.config import settings
from sellerpay.core.enum_utils import enum_values, get_enum_value, status_in
from sellerpay.core.exceptions import (
    NoPayoutsAvailableError,
    PayoutConsistencyError,
    PayoutNotFoundError,
    PayoutStateConflictError,
    PayoutValidationError,
    ThresholdNotMetError,
)
from sellerpay.models.payout import PayoutStatus, SellerPayout

logger = logging.getLogger(__name__)

PAYOUT_UNIQUE_CONSTRAINT = "uq_seller_payouts_order_seller"

# Statuses an admin may approve or reject from
REVIEWABLE_STATUSES = (PayoutStatus.PENDING, PayoutStatus.PROCESSING)

# Statuses counted as "pending" for sellers (not yet paid, not failed)
PENDING_TOTAL_STATUSES = (PayoutStatus.HOLD, PayoutStatus.PENDING)


def is_duplicate_payout_error(exc: Exception) -> bool:
    """
    True if a database error is the (order_id, seller_id) uniqueness violation.

    Works for PostgreSQL (SQLSTATE 23505 naming the constraint) and SQLite
    ("UNIQUE constraint failed: seller_payouts.order_id, seller_payouts.seller_id").
    """
    orig = getattr(exc, "orig", None) or exc
    message = str(orig)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)

    is_unique_violation = (
        sqlstate == "23505"
        or "UNIQUE constraint failed" in message
        or "duplicate key" in message.lower()
    )
    if not is_unique_violation:
        return False
    return PAYOUT_UNIQUE_CONSTRAINT in message or (
        "seller_payouts.order_id" in message and "seller_payouts.seller_id" in message
    )


@dataclass
class PayoutCreateResult:
    """Outcome of an idempotent create: the persisted payout and who wrote it."""
    payout: SellerPayout
    created: bool


class PayoutEntry(NamedTuple):
    """One seller's payout within an order."""
    seller_id: uuid.UUID
    amount: int
    commission: int


class PayoutLedgerService:
    """Service for seller payout records and their lifecycle."""

    def __init__(
        self,
        db: AsyncSession,
        max_retries: Optional[int] = None,
        initial_delay_ms: Optional[int] = None,
    ):
        self.db = db
        self.max_retries = settings.PAYOUT_CREATE_MAX_RETRIES if max_retries is None else max_retries
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.initial_delay_ms = (
            settings.PAYOUT_CREATE_RETRY_DELAY_MS if initial_delay_ms is None else initial_delay_ms
        )

    # ========================================================================
    # Creation
    # ========================================================================

    async def create(
        self,
        seller_id: uuid.UUID,
        order_id: str,
        amount: int,
        commission: int,
        status: Union[PayoutStatus, str] = PayoutStatus.HOLD,
    ) -> SellerPayout:
        """
        Create the payout for (order_id, seller_id), or return the existing one.

        Concurrent and repeated calls with the same key all return the same
        persisted record.

        Raises:
            PayoutValidationError: amount <= 0 or commission < 0
            PayoutConsistencyError: duplicate reported but existing row not readable
        """
        result = await self.create_or_get(seller_id, order_id, amount, commission, status)
        return result.payout

    async def create_or_get(
        self,
        seller_id: uuid.UUID,
        order_id: str,
        amount: int,
        commission: int,
        status: Union[PayoutStatus, str] = PayoutStatus.HOLD,
    ) -> PayoutCreateResult:
        """
        Insert a payout keyed by (order_id, seller_id).

        Returns PayoutCreateResult(created=True) for the writer that inserted
        the row and PayoutCreateResult(created=False) with the winning row for
        everyone else.
        """
        self._validate_amounts(order_id, seller_id, amount, commission)

        order_id = str(order_id)
        payout = SellerPayout(
            id=uuid.uuid4(),
            seller_id=seller_id,
            order_id=order_id,
            amount=amount,
            commission=commission,
            status=get_enum_value(status),
        )
        self.db.add(payout)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not is_duplicate_payout_error(e):
                raise

            logger.info(
                f"Duplicate payout for order {order_id} seller {seller_id}, resolving existing record"
            )
            existing = await self._find_existing_with_retry(order_id, seller_id)
            if existing is None:
                logger.error(
                    f"Duplicate payout for order {order_id} seller {seller_id} "
                    f"not found after {self.max_retries} attempts"
                )
                raise PayoutConsistencyError(
                    f"Duplicate payout detected but existing record not found after "
                    f"{self.max_retries} retries. This may indicate a transaction isolation "
                    f"or replication issue.",
                    details={"order_id": order_id, "seller_id": str(seller_id)},
                ) from e
            return PayoutCreateResult(payout=existing, created=False)

        logger.info(
            f"Created payout {payout.id} for order {order_id} seller {seller_id}: "
            f"amount={amount} commission={commission} status={payout.status}"
        )
        return PayoutCreateResult(payout=payout, created=True)

    async def create_for_order(
        self,
        order_id: str,
        entries: Iterable[PayoutEntry],
    ) -> List[PayoutCreateResult]:
        """
        Create the HOLD payouts of one order in a single transaction.

        Either every missing payout of the order is committed or none is, so
        a failure part-way through never leaves the order half-processed.
        Payouts that already exist are returned with created=False. If a
        concurrent writer wins any (order, seller) key, the whole batch is
        rolled back and retried against the rows now visible, with the same
        backoff as create_or_get.

        Raises:
            PayoutValidationError: any entry with amount <= 0 or commission < 0
            PayoutConsistencyError: duplicates keep colliding after all retries
        """
        order_id = str(order_id)
        entries = list(entries)
        for entry in entries:
            self._validate_amounts(order_id, entry.seller_id, entry.amount, entry.commission)

        for attempt in range(self.max_retries):
            existing = {p.seller_id: p for p in await self.get_payouts_for_order(order_id)}

            results = []
            for entry in entries:
                if entry.seller_id in existing:
                    results.append(PayoutCreateResult(payout=existing[entry.seller_id], created=False))
                    continue
                payout = SellerPayout(
                    id=uuid.uuid4(),
                    seller_id=entry.seller_id,
                    order_id=order_id,
                    amount=entry.amount,
                    commission=entry.commission,
                    status=PayoutStatus.HOLD.value,
                )
                self.db.add(payout)
                results.append(PayoutCreateResult(payout=payout, created=True))

            if not any(r.created for r in results):
                return results

            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                if not is_duplicate_payout_error(e):
                    raise
                if attempt < self.max_retries - 1:
                    delay = self.initial_delay_ms * (2 ** attempt) / 1000
                    logger.info(
                        f"Duplicate payout while creating order {order_id} "
                        f"(attempt {attempt + 1}/{self.max_retries}), retrying in {delay:.3f}s"
                    )
                    await asyncio.sleep(delay)
                continue

            logger.info(
                f"Created {sum(1 for r in results if r.created)} payouts for order {order_id} "
                f"({len(results)} sellers)"
            )
            return results

        logger.error(f"Payouts for order {order_id} still colliding after {self.max_retries} attempts")
        raise PayoutConsistencyError(
            f"Duplicate payouts detected for order {order_id} but existing records not "
            f"found after {self.max_retries} retries",
            details={"order_id": order_id},
        )

    @staticmethod
    def _validate_amounts(order_id: str, seller_id: uuid.UUID, amount: int, commission: int) -> None:
        if amount <= 0:
            raise PayoutValidationError(
                "Payout amount must be greater than zero",
                details={"order_id": str(order_id), "seller_id": str(seller_id), "amount": amount},
            )
        if commission < 0:
            raise PayoutValidationError(
                "Commission cannot be negative",
                details={"order_id": str(order_id), "seller_id": str(seller_id), "commission": commission},
            )

    async def _find_existing_with_retry(
        self,
        order_id: str,
        seller_id: uuid.UUID,
    ) -> Optional[SellerPayout]:
        """
        Read back the winning payout, tolerating read-after-write lag.

        Backoff doubles from initial_delay_ms: 10, 20, 40, 80 ms by default.
        Each attempt runs in a new transaction.
        """
        for attempt in range(self.max_retries):
            existing = await self.get_by_order_and_seller(order_id, seller_id)
            if existing is not None:
                return existing

            # End the read transaction so the next attempt gets a fresh snapshot
            await self.db.rollback()
            if attempt < self.max_retries - 1:
                delay = self.initial_delay_ms * (2 ** attempt) / 1000
                logger.debug(
                    f"Payout for order {order_id} seller {seller_id} not visible yet "
                    f"(attempt {attempt + 1}/{self.max_retries}), retrying in {delay:.3f}s"
                )
                await asyncio.sleep(delay)
        return None

    # ========================================================================
    # Transitions
    # ========================================================================

    async def request_release(
        self,
        seller_id: uuid.UUID,
        minimum_threshold: int,
    ) -> List[SellerPayout]:
        """
        Release all HOLD payouts of a seller to PENDING if their total meets
        the threshold.

        The sum and the transition run as one UPDATE statement:

            UPDATE seller_payouts SET status = 'PENDING', released_at = now
             WHERE seller_id = :seller AND status = 'HOLD'
               AND (SELECT SUM(amount) FROM seller_payouts h
                     WHERE h.seller_id = :seller AND h.status = 'HOLD') >= :threshold

        so two concurrent requests cannot both count the same HOLD funds.

        Raises:
            PayoutValidationError: negative threshold
            ThresholdNotMetError: HOLD total below minimum_threshold
            NoPayoutsAvailableError: nothing in HOLD
        """
        if minimum_threshold < 0:
            raise PayoutValidationError(
                "Minimum payout threshold cannot be negative",
                details={"minimum_threshold": minimum_threshold},
            )

        held = aliased(SellerPayout)
        hold_total = (
            select(func.coalesce(func.sum(held.amount), 0))
            .where(
                held.seller_id == seller_id,
                held.status == PayoutStatus.HOLD.value,
            )
            .scalar_subquery()
        )

        now = datetime.now(timezone.utc)
        stmt = (
            update(SellerPayout)
            .where(
                SellerPayout.seller_id == seller_id,
                SellerPayout.status == PayoutStatus.HOLD.value,
                hold_total >= minimum_threshold,
            )
            .values(
                status=PayoutStatus.PENDING.value,
                released_at=now,
                updated_at=now,
            )
            .returning(SellerPayout.id)
            .execution_options(synchronize_session=False)
        )

        result = await self.db.execute(stmt)
        released_ids = list(result.scalars().all())
        await self.db.commit()

        if not released_ids:
            # Read-only diagnosis of why nothing moved
            current_hold = await self.get_hold_total(seller_id)
            if current_hold < minimum_threshold:
                raise ThresholdNotMetError(
                    "Minimum payout threshold not met",
                    details={
                        "seller_id": str(seller_id),
                        "hold_total": current_hold,
                        "minimum_threshold": minimum_threshold,
                    },
                )
            raise NoPayoutsAvailableError(
                "No payouts available to request",
                details={"seller_id": str(seller_id)},
            )

        released = await self.db.execute(
            select(SellerPayout)
            .where(SellerPayout.id.in_(released_ids))
            .order_by(SellerPayout.created_at.desc())
            .execution_options(populate_existing=True)
        )
        payouts = list(released.scalars().all())

        logger.info(
            f"Released {len(payouts)} payouts for seller {seller_id} "
            f"totalling {sum(p.amount for p in payouts)}"
        )
        return payouts

    async def approve(self, payout_id: uuid.UUID) -> SellerPayout:
        """
        Admin approves a payout: PENDING | PROCESSING -> COMPLETED.

        Raises:
            PayoutNotFoundError: no such payout
            PayoutStateConflictError: payout not PENDING or PROCESSING
        """
        now = datetime.now(timezone.utc)
        return await self._transition_reviewable(
            payout_id,
            action="approved",
            values={
                "status": PayoutStatus.COMPLETED.value,
                "completed_at": now,
                "updated_at": now,
            },
        )

    async def reject(self, payout_id: uuid.UUID, reason: str) -> SellerPayout:
        """
        Admin rejects a payout: PENDING | PROCESSING -> FAILED with reason.

        Raises:
            PayoutValidationError: empty reason
            PayoutNotFoundError: no such payout
            PayoutStateConflictError: payout not PENDING or PROCESSING
        """
        if not reason or not reason.strip():
            raise PayoutValidationError("Rejection reason is required")

        return await self._transition_reviewable(
            payout_id,
            action="rejected",
            values={
                "status": PayoutStatus.FAILED.value,
                "failure_reason": reason.strip(),
                "updated_at": datetime.now(timezone.utc),
            },
        )

    async def _transition_reviewable(
        self,
        payout_id: uuid.UUID,
        action: str,
        values: Dict,
    ) -> SellerPayout:
        payout = await self.get_by_id(payout_id)
        if not payout:
            raise PayoutNotFoundError(
                "Payout not found", details={"payout_id": str(payout_id)}
            )

        previous_status = payout.status
        conflict_message = f"Only PENDING or PROCESSING payouts can be {action}"
        if not status_in(payout.status, *REVIEWABLE_STATUSES):
            raise PayoutStateConflictError(
                conflict_message,
                details={"payout_id": str(payout_id), "status": payout.status},
            )

        # Compare-and-set: a concurrent review of the same payout matches no row
        result = await self.db.execute(
            update(SellerPayout)
            .where(
                SellerPayout.id == payout_id,
                SellerPayout.status.in_(enum_values(*REVIEWABLE_STATUSES)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise PayoutStateConflictError(
                conflict_message,
                details={"payout_id": str(payout_id), "reason": "concurrent status change"},
            )
        await self.db.commit()

        updated = await self._reload(payout_id)
        logger.info(f"Payout {payout_id} {action}: {previous_status} -> {updated.status}")
        return updated

    # ========================================================================
    # Queries
    # ========================================================================

    async def _reload(self, payout_id: uuid.UUID) -> Optional[SellerPayout]:
        result = await self.db.execute(
            select(SellerPayout)
            .where(SellerPayout.id == payout_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, payout_id: uuid.UUID) -> Optional[SellerPayout]:
        """Get payout by ID"""
        return await self._reload(payout_id)

    async def get_by_order_and_seller(
        self,
        order_id: str,
        seller_id: uuid.UUID,
    ) -> Optional[SellerPayout]:
        """Get the payout for an (order, seller) pair"""
        result = await self.db.execute(
            select(SellerPayout)
            .where(
                SellerPayout.order_id == str(order_id),
                SellerPayout.seller_id == seller_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_payouts_for_seller(self, seller_id: uuid.UUID) -> List[SellerPayout]:
        """All payouts for a seller, newest first"""
        result = await self.db.execute(
            select(SellerPayout)
            .where(SellerPayout.seller_id == seller_id)
            .order_by(SellerPayout.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_payouts_for_order(self, order_id: str) -> List[SellerPayout]:
        result = await self.db.execute(
            select(SellerPayout)
            .where(SellerPayout.order_id == str(order_id))
            .order_by(SellerPayout.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_pending_total(self, seller_id: uuid.UUID) -> int:
        """
        Total of HOLD and PENDING payouts for a seller.

        Used for threshold checks and the seller-facing balance.
        """
        result = await self.db.execute(
            select(func.coalesce(func.sum(SellerPayout.amount), 0))
            .where(
                SellerPayout.seller_id == seller_id,
                SellerPayout.status.in_(enum_values(*PENDING_TOTAL_STATUSES)),
            )
        )
        return int(result.scalar() or 0)

    async def get_hold_total(self, seller_id: uuid.UUID) -> int:
        """Total of HOLD payouts for a seller"""
        result = await self.db.execute(
            select(func.coalesce(func.sum(SellerPayout.amount), 0))
            .where(
                SellerPayout.seller_id == seller_id,
                SellerPayout.status == PayoutStatus.HOLD.value,
            )
        )
        return int(result.scalar() or 0)

    async def can_request_payout(self, seller_id: uuid.UUID, minimum_threshold: int) -> bool:
        """True if the seller's pending total meets or exceeds the threshold"""
        pending_total = await self.get_pending_total(seller_id)
        return pending_total >= minimum_threshold

    async def has_payouts_for_order(self, order_id: str) -> bool:
        """
        Check if any payout exists for an order.

        Optimistic short-circuit only: it is not atomic with a later create.
        """
        result = await self.db.execute(
            select(func.count(SellerPayout.id)).where(SellerPayout.order_id == str(order_id))
        )
        return (result.scalar() or 0) > 0

    async def get_pending_payouts(self) -> List[SellerPayout]:
        """Admin review queue: PENDING and PROCESSING payouts, newest first"""
        result = await self.db.execute(
            select(SellerPayout)
            .where(SellerPayout.status.in_(enum_values(*REVIEWABLE_STATUSES)))
            .order_by(SellerPayout.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_payout_summary(self, seller_id: uuid.UUID) -> dict:
        """Payout totals and counts per status for a seller"""
        result = await self.db.execute(
            select(
                SellerPayout.status,
                func.coalesce(func.sum(SellerPayout.amount), 0),
                func.count(SellerPayout.id),
            )
            .where(SellerPayout.seller_id == seller_id)
            .group_by(SellerPayout.status)
        )

        total_by_status = {status.value: 0 for status in PayoutStatus}
        count_by_status = {status.value: 0 for status in PayoutStatus}
        for status, total, count in result.all():
            total_by_status[status] = int(total or 0)
            count_by_status[status] = int(count or 0)

        return {
            "seller_id": seller_id,
            "total_by_status": total_by_status,
            "count_by_status": count_by_status,
            "pending_total": sum(total_by_status[s.value] for s in PENDING_TOTAL_STATUSES),
            "lifetime_paid": total_by_status[PayoutStatus.COMPLETED.value],
        }
