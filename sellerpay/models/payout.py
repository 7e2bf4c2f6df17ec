"""Seller payout ledger model.

One row per (order, seller): the seller's entitlement from that order and its
position in the payout lifecycle.

    HOLD ──► PENDING ──► COMPLETED
                │   ▲
                ▼   │ (external payout worker)
             FAILED PROCESSING ──► COMPLETED / FAILED

Rows are append-only and never deleted. Amounts are integers in the smallest
currency unit (cents).
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy import UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sellerpay.core.enum_utils import enum_comment
from sellerpay.database import Base
from sellerpay.db_types import UUIDType

if TYPE_CHECKING:
    from sellerpay.models.seller import MarketplaceSeller


class PayoutStatus(str, Enum):
    """Seller payout status."""
    HOLD = "HOLD"                   # Held in escrow until released
    PENDING = "PENDING"             # Released, awaiting payout execution
    PROCESSING = "PROCESSING"       # Payout execution in flight (external worker)
    COMPLETED = "COMPLETED"         # Successfully paid out
    FAILED = "FAILED"               # Rejected or failed, see failure_reason


class SellerPayout(Base):
    """
    Payout record for one seller from one order.

    commission + amount equals the seller's line total for the order.
    """
    __tablename__ = "seller_payouts"
    __table_args__ = (
        UniqueConstraint("order_id", "seller_id", name="uq_seller_payouts_order_seller"),
        CheckConstraint("amount > 0", name="ck_seller_payouts_amount_positive"),
        CheckConstraint("commission >= 0", name="ck_seller_payouts_commission_non_negative"),
        Index('ix_seller_payouts_seller_created', 'seller_id', 'created_at'),
        Index('ix_seller_payouts_seller_status', 'seller_id', 'status'),
        Index('ix_seller_payouts_status', 'status'),
        Index('ix_seller_payouts_order', 'order_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Seller & Order Reference
    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("marketplace_sellers.id", ondelete="RESTRICT"),
        nullable=False
    )
    order_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="External order identifier"
    )

    # Amounts (smallest currency unit)
    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Seller payout amount in cents"
    )
    commission: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Commission withheld in cents"
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PayoutStatus.HOLD.value,
        comment=enum_comment(PayoutStatus)
    )

    # Lifecycle
    released_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When payout was released from HOLD"
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    seller: Mapped["MarketplaceSeller"] = relationship(
        "MarketplaceSeller",
        back_populates="payouts"
    )

    def __repr__(self) -> str:
        return f"<SellerPayout(order={self.order_id}, seller={self.seller_id}, amount={self.amount}, status={self.status})>"
