"""Commission history recording and reporting."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sellerpay.core.exceptions import PayoutValidationError, SplitIntegrityError
from sellerpay.models.commission_history import CommissionHistoryStatus
from sellerpay.schemas.split import SellerSplit, SplitResult
from sellerpay.services.commission_history_service import CommissionHistoryService


async def record(service, seller_id, order_id, order_total, commission, status=CommissionHistoryStatus.CALCULATED):
    return await service.create_commission_history(
        order_id=order_id,
        seller_id=seller_id,
        commission_rate=Decimal("0.15"),
        order_total=order_total,
        commission_amount=commission,
        seller_payout=order_total - commission,
        status=status,
    )


async def test_create_commission_history(db, seller_id):
    history = await record(CommissionHistoryService(db), seller_id, "order-1", 10000, 1500)

    assert history.status == CommissionHistoryStatus.CALCULATED.value
    assert history.seller_payout == 8500
    assert history.commission_rate == Decimal("0.15")


async def test_create_is_idempotent_per_order_and_seller(db, seller_id):
    service = CommissionHistoryService(db)
    first = await record(service, seller_id, "order-1", 10000, 1500)
    second = await record(service, seller_id, "order-1", 10000, 1500)

    assert second.id == first.id
    _, total = await service.get_commission_history(seller_id)
    assert total == 1


async def test_unreconciled_history_rejected(db, seller_id):
    with pytest.raises(SplitIntegrityError):
        await CommissionHistoryService(db).create_commission_history(
            order_id="order-1",
            seller_id=seller_id,
            commission_rate=Decimal("0.15"),
            order_total=10000,
            commission_amount=1500,
            seller_payout=8499,
        )


async def test_record_split(db, make_seller):
    seller_a = await make_seller("A")
    seller_b = await make_seller("B")
    split = SplitResult(
        order_id="order-1",
        total_amount=3000,
        commission=400,
        seller_payout=2600,
        seller_splits=[
            SellerSplit(seller_id=seller_a, amount=900, commission=100, line_total=1000,
                        commission_rate=Decimal("0.10")),
            SellerSplit(seller_id=seller_b, amount=1700, commission=300, line_total=2000,
                        commission_rate=Decimal("0.15")),
        ],
    )

    records = await CommissionHistoryService(db).record_split(split)

    assert [(r.seller_id, r.commission_amount) for r in records] == [(seller_a, 100), (seller_b, 300)]


async def test_record_split_requires_rate(db, seller_id):
    split = SplitResult(
        order_id="order-1",
        total_amount=1000,
        commission=150,
        seller_payout=850,
        seller_splits=[SellerSplit(seller_id=seller_id, amount=850, commission=150, line_total=1000)],
    )
    with pytest.raises(SplitIntegrityError):
        await CommissionHistoryService(db).record_split(split)


async def test_history_is_paginated_newest_first(db, seller_id):
    service = CommissionHistoryService(db)
    for i in range(5):
        await record(service, seller_id, f"order-{i}", 1000, 150)

    items, total = await service.get_commission_history(seller_id, skip=1, take=2)

    assert total == 5
    assert [h.order_id for h in items] == ["order-3", "order-2"]


async def test_history_filters(db, make_seller):
    seller = await make_seller("A")
    other = await make_seller("B")
    service = CommissionHistoryService(db)
    await record(service, seller, "order-1", 1000, 150)
    await record(service, seller, "order-2", 1000, 150, status=CommissionHistoryStatus.PAID)
    await record(service, other, "order-1", 1000, 150)

    items, total = await service.get_commission_history(seller, status="PAID")
    assert total == 1
    assert items[0].order_id == "order-2"

    items, total = await service.get_commission_history(seller, order_id="order-1")
    assert total == 1
    assert items[0].seller_id == seller

    tomorrow = datetime.now(timezone.utc) + timedelta(days=1)
    _, total = await service.get_commission_history(seller, start_date=tomorrow)
    assert total == 0


async def test_history_rejects_unknown_status(db, seller_id):
    with pytest.raises(PayoutValidationError):
        await CommissionHistoryService(db).get_commission_history(seller_id, status="SETTLED")


async def test_seller_commission_summary(db, seller_id):
    service = CommissionHistoryService(db)
    await record(service, seller_id, "order-1", 10000, 1500)
    await record(service, seller_id, "order-2", 2000, 300, status=CommissionHistoryStatus.PAID)

    summary = await service.get_seller_commission_summary(seller_id)

    assert summary["total_commissions"] == 1800
    assert summary["total_payouts"] == 10200
    assert summary["total_orders"] == 2
    assert summary["commissions_by_status"] == {"CALCULATED": 1500, "PAID": 300, "REFUNDED": 0}


async def test_summary_for_unknown_seller_is_empty(db):
    summary = await CommissionHistoryService(db).get_seller_commission_summary(uuid.uuid4())
    assert summary["total_commissions"] == 0
    assert summary["total_orders"] == 0
