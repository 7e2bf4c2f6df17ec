"""Commission rate resolution."""

import uuid
from decimal import Decimal

import pytest

from sellerpay.core.exceptions import PayoutValidationError
from sellerpay.services.commission_service import (
    CommissionRateResolver,
    to_rate,
    validate_commission_rate,
)


async def test_seller_without_override_uses_default(db, seller_id):
    resolver = CommissionRateResolver(db, default_rate=Decimal("0.15"))
    assert await resolver.resolve(seller_id) == Decimal("0.15")


async def test_seller_override_wins(db, make_seller):
    seller = await make_seller("Premium Seller", commission_rate="0.1000")
    resolver = CommissionRateResolver(db, default_rate=Decimal("0.15"))
    assert await resolver.resolve(seller) == Decimal("0.1")


async def test_unknown_seller_uses_default(db):
    resolver = CommissionRateResolver(db, default_rate=Decimal("0.2"))
    assert await resolver.resolve(uuid.uuid4()) == Decimal("0.2")


async def test_default_rate_comes_from_settings(db):
    from sellerpay.config import settings

    resolver = CommissionRateResolver(db)
    assert resolver.default_rate == settings.DEFAULT_COMMISSION_RATE


async def test_resolve_many_returns_every_seller(db, make_seller):
    with_override = await make_seller("A", commission_rate="0.2000")
    without_override = await make_seller("B")
    missing = uuid.uuid4()

    resolver = CommissionRateResolver(db, default_rate=Decimal("0.15"))
    rates = await resolver.resolve_many([with_override, without_override, missing, with_override])

    assert rates == {
        with_override: Decimal("0.2"),
        without_override: Decimal("0.15"),
        missing: Decimal("0.15"),
    }


async def test_resolve_many_empty(db):
    assert await CommissionRateResolver(db).resolve_many([]) == {}


def test_invalid_default_rate_rejected():
    with pytest.raises(PayoutValidationError):
        CommissionRateResolver(None, default_rate=Decimal("1.5"))


def test_to_rate_keeps_float_digits():
    assert to_rate(0.1333) == Decimal("0.1333")
    assert to_rate("0.15") == Decimal("0.15")
    assert to_rate(1) == Decimal("1")


@pytest.mark.parametrize("rate", [Decimal("NaN"), Decimal("Infinity"), Decimal("-0.0001"), Decimal("1.0001")])
def test_validate_commission_rate_rejects(rate):
    with pytest.raises(PayoutValidationError):
        validate_commission_rate(rate)


@pytest.mark.parametrize("rate", ["0", "0.5", "1"])
def test_validate_commission_rate_accepts_bounds(rate):
    assert validate_commission_rate(rate) == Decimal(rate)
