"""Commission history model.

Audit trail of every commission calculation: the rate actually applied to a
seller's share of an order and the resulting split.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import String, DateTime, ForeignKey, Integer
from sqlalchemy import UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from sellerpay.core.enum_utils import enum_comment
from sellerpay.database import Base
from sellerpay.db_types import UUIDType, RateType


class CommissionHistoryStatus(str, Enum):
    """Commission history status."""
    CALCULATED = "CALCULATED"       # Calculated, not yet paid
    PAID = "PAID"                   # Commission collected by the platform
    REFUNDED = "REFUNDED"           # Order cancelled or refunded


class CommissionHistory(Base):
    """Commission calculated for one seller on one order."""
    __tablename__ = "commission_history"
    __table_args__ = (
        UniqueConstraint("order_id", "seller_id", name="uq_commission_history_order_seller"),
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 1",
            name="ck_commission_history_rate_range",
        ),
        CheckConstraint(
            "commission_amount + seller_payout = order_total",
            name="ck_commission_history_reconciles",
        ),
        Index('ix_commission_history_seller_created', 'seller_id', 'created_at'),
        Index('ix_commission_history_status', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    order_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("marketplace_sellers.id", ondelete="RESTRICT"),
        nullable=False
    )

    # Calculation
    commission_rate: Mapped[Decimal] = mapped_column(
        RateType,
        nullable=False,
        comment="Rate applied (0-1)"
    )
    order_total: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Seller line total for the order in cents"
    )
    commission_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    seller_payout: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionHistoryStatus.CALCULATED.value,
        comment=enum_comment(CommissionHistoryStatus)
    )

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

    def __repr__(self) -> str:
        return f"<CommissionHistory(order={self.order_id}, seller={self.seller_id}, commission={self.commission_amount})>"
