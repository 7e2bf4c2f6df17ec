"""Marketplace seller model.

Sellers are registered and verified elsewhere. The payout core only reads the
optional per-seller commission override and references sellers from payouts.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sellerpay.database import Base
from sellerpay.db_types import UUIDType, RateType

if TYPE_CHECKING:
    from sellerpay.models.payout import SellerPayout


class MarketplaceSeller(Base):
    """
    Seller selling through the marketplace.

    commission_rate is a fraction in [0, 1]; NULL means the platform
    default commission rate applies.
    """
    __tablename__ = "marketplace_sellers"
    __table_args__ = (
        CheckConstraint(
            "commission_rate IS NULL OR (commission_rate >= 0 AND commission_rate <= 1)",
            name="ck_marketplace_sellers_commission_rate",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        RateType,
        nullable=True,
        comment="Seller-specific commission rate (0-1), NULL uses platform default"
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

    # Relationships
    payouts: Mapped[List["SellerPayout"]] = relationship(
        "SellerPayout",
        back_populates="seller"
    )

    def __repr__(self) -> str:
        return f"<MarketplaceSeller(name={self.name}, commission_rate={self.commission_rate})>"
