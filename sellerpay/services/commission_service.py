"""
Commission Service

Resolves the commission rate that applies to a seller:
- Seller-specific override (marketplace_sellers.commission_rate)
- Platform default from settings when no override is set

Rates are fractions in [0, 1] held as Decimal (0.15 = 15%).
"""

import logging
import math
import uuid
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sellerpay.config import settings
from sellerpay.core.exceptions import PayoutValidationError
from sellerpay.models.seller import MarketplaceSeller

logger = logging.getLogger(__name__)

RateLike = Union[Decimal, float, int, str]


def to_rate(value: RateLike) -> Decimal:
    """
    Convert a rate to Decimal without binary float artefacts.

    Floats go through str() so 0.1333 stays 0.1333 rather than
    0.13330000000000000293...
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            raise PayoutValidationError("Commission rate cannot be NaN")
        if math.isinf(value):
            raise PayoutValidationError("Commission rate must be a finite number")
        return Decimal(str(value))
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise PayoutValidationError(f"Invalid commission rate: {value!r}")


def validate_commission_rate(rate: RateLike) -> Decimal:
    """
    Validate a commission rate and return it as Decimal.

    Raises:
        PayoutValidationError: NaN, infinite, negative or above 1.0
    """
    rate = to_rate(rate)
    if rate.is_nan():
        raise PayoutValidationError("Commission rate cannot be NaN")
    if rate.is_infinite():
        raise PayoutValidationError("Commission rate must be a finite number")
    if rate < 0:
        raise PayoutValidationError("Commission rate cannot be negative")
    if rate > 1:
        raise PayoutValidationError("Commission rate cannot exceed 100% (1.0)")
    return rate


class CommissionRateResolver:
    """
    Looks up the effective commission rate for sellers.

    The platform default is injected at construction so tests and tenants can
    run with different defaults; it falls back to settings.DEFAULT_COMMISSION_RATE.
    Resolution never fails: a missing seller or a NULL override means the
    default applies.
    """

    def __init__(self, db: AsyncSession, default_rate: Optional[RateLike] = None):
        self.db = db
        self._default_rate = validate_commission_rate(
            settings.DEFAULT_COMMISSION_RATE if default_rate is None else default_rate
        )

    @property
    def default_rate(self) -> Decimal:
        return self._default_rate

    async def resolve(self, seller_id: uuid.UUID) -> Decimal:
        """Get the commission rate for a single seller."""
        result = await self.db.execute(
            select(MarketplaceSeller.commission_rate).where(MarketplaceSeller.id == seller_id)
        )
        override = result.scalar_one_or_none()
        if override is None:
            return self._default_rate
        return to_rate(override)

    async def resolve_many(self, seller_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Decimal]:
        """
        Get commission rates for several sellers in one query.

        Every requested seller is present in the result.
        """
        ids = list(dict.fromkeys(seller_ids))
        if not ids:
            return {}

        result = await self.db.execute(
            select(MarketplaceSeller.id, MarketplaceSeller.commission_rate)
            .where(MarketplaceSeller.id.in_(ids))
        )
        overrides = {
            row.id: to_rate(row.commission_rate)
            for row in result.all()
            if row.commission_rate is not None
        }

        rates = {seller_id: overrides.get(seller_id, self._default_rate) for seller_id in ids}
        logger.debug(
            "Resolved commission rates for %d sellers (%d overrides)", len(rates), len(overrides)
        )
        return rates
