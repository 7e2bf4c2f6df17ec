"""Order-paid processing: splits, HOLD payouts and commission history."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from sellerpay.core.exceptions import SplitIntegrityError
from sellerpay.models.commission_history import CommissionHistory
from sellerpay.models.payout import PayoutStatus, SellerPayout
from sellerpay.schemas.order import OrderLineInput, OrderPaidNotification
from sellerpay.schemas.split import SplitAmounts
from sellerpay.services.commission_service import CommissionRateResolver
from sellerpay.services.order_payment_service import OrderPaymentService
from sellerpay.services.payout_ledger_service import PayoutLedgerService
from sellerpay.services.split_payment_service import SplitPaymentCalculator


def make_order(order_id, total, *lines):
    return OrderPaidNotification(
        id=order_id,
        total=total,
        lines=[
            OrderLineInput(id=f"{order_id}-line-{i}", price=price, seller_id=seller)
            for i, (price, seller) in enumerate(lines)
        ],
    )


def make_service(db, default_rate="0.15"):
    return OrderPaymentService(db, rate_resolver=CommissionRateResolver(db, default_rate=Decimal(default_rate)))


async def test_single_seller_order_creates_hold_payout(db, seller_id):
    result = await make_service(db).process_payment(make_order("order-a", 10000, (10000, seller_id)))

    assert result.commission == 1500
    assert result.seller_payout == 8500

    payouts = await PayoutLedgerService(db).get_payouts_for_seller(seller_id)
    assert len(payouts) == 1
    assert payouts[0].amount == 8500
    assert payouts[0].commission == 1500
    assert payouts[0].status == PayoutStatus.HOLD.value


async def test_multi_seller_order_uses_seller_rates(db, make_seller):
    seller_a = await make_seller("A", commission_rate="0.10")
    seller_b = await make_seller("B", commission_rate="0.20")

    result = await make_service(db).process_payment(
        make_order("order-c", 20000, (10000, seller_a), (10000, seller_b))
    )

    splits = {s.seller_id: s for s in result.seller_splits}
    assert (splits[seller_a].amount, splits[seller_a].commission) == (9000, 1000)
    assert (splits[seller_b].amount, splits[seller_b].commission) == (8000, 2000)
    assert splits[seller_a].commission_rate == Decimal("0.1")
    assert result.commission == 3000
    assert result.seller_payout == 17000

    ledger = PayoutLedgerService(db)
    assert await ledger.get_pending_total(seller_a) == 9000
    assert await ledger.get_pending_total(seller_b) == 8000


async def test_order_without_sellers_touches_nothing(db, session_factory):
    result = await make_service(db).process_payment(make_order("order-p", 5000, (5000, None)))

    assert result is None
    async with session_factory() as session:
        assert (await session.execute(select(func.count(SellerPayout.id)))).scalar() == 0


async def test_zero_payout_split_is_skipped(db, make_seller, session_factory):
    platform_keeps_all = await make_seller("Consignment", commission_rate="1")
    regular = await make_seller("Regular")

    result = await make_service(db).process_payment(
        make_order("order-z", 3000, (1000, platform_keeps_all), (2000, regular))
    )

    assert result.commission == 1000 + 300
    ledger = PayoutLedgerService(db)
    payouts = await ledger.get_payouts_for_order("order-z")
    assert [p.seller_id for p in payouts] == [regular]


async def test_integrity_failure_propagates_and_creates_nothing(db, seller_id, session_factory):
    class BrokenCalculator(SplitPaymentCalculator):
        def split(self, amount, rate):
            commission, payout = super().split(amount, rate)
            return SplitAmounts(commission, payout - 1)

    service = OrderPaymentService(db, calculator=BrokenCalculator())

    with pytest.raises(SplitIntegrityError):
        await service.process_payment_idempotent(make_order("order-x", 10000, (10000, seller_id)))

    async with session_factory() as session:
        assert (await session.execute(select(func.count(SellerPayout.id)))).scalar() == 0


async def test_idempotent_processing_skips_known_orders(db, seller_id, session_factory):
    service = make_service(db)
    order = make_order("order-d", 10000, (10000, seller_id))

    first = await service.process_payment_idempotent(order)
    second = await service.process_payment_idempotent(order)

    assert first is not None
    assert second is None
    async with session_factory() as session:
        assert (await session.execute(select(func.count(SellerPayout.id)))).scalar() == 1


async def test_concurrent_notifications_create_one_payout(session_factory, seller_id):
    order = make_order("order-d", 10000, (10000, seller_id))

    async def notify():
        async with session_factory() as session:
            return await make_service(session).process_payment_idempotent(order)

    results = await asyncio.gather(notify(), notify())

    assert any(r is not None for r in results)
    for result in results:
        assert result is None or result.seller_payout == 8500

    async with session_factory() as session:
        count = (await session.execute(
            select(func.count(SellerPayout.id)).where(SellerPayout.order_id == "order-d")
        )).scalar()
    assert count == 1


async def test_failure_mid_order_leaves_nothing_and_redelivery_pays_all(engine, make_seller, session_factory):
    seller_a = await make_seller("A")
    seller_b = await make_seller("B")
    order = make_order("order-m", 3000, (1000, seller_a), (2000, seller_b))
    failed = []

    def fail_insert_for_seller_b(conn, cursor, statement, parameters, context, executemany):
        params = repr(parameters)
        if (
            not failed
            and statement.startswith("INSERT INTO seller_payouts")
            and (seller_b.hex in params or str(seller_b) in params)
        ):
            failed.append(statement)
            raise OperationalError(statement, parameters, Exception("connection lost"))

    event.listen(engine.sync_engine, "before_cursor_execute", fail_insert_for_seller_b)
    try:
        async with session_factory() as session:
            with pytest.raises(OperationalError):
                await make_service(session).process_payment_idempotent(order)
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", fail_insert_for_seller_b)

    assert failed
    async with session_factory() as session:
        count = (await session.execute(
            select(func.count(SellerPayout.id)).where(SellerPayout.order_id == "order-m")
        )).scalar()
    assert count == 0

    async with session_factory() as session:
        result = await make_service(session).process_payment_idempotent(order)
        assert result is not None

        ledger = PayoutLedgerService(session)
        assert await ledger.get_pending_total(seller_a) == 850
        assert await ledger.get_pending_total(seller_b) == 1700


async def test_duplicate_payout_error_counts_as_processed(db, seller_id):
    class RacedLedger(PayoutLedgerService):
        async def create_for_order(self, order_id, entries):
            raise IntegrityError(
                "INSERT INTO seller_payouts",
                {},
                Exception("UNIQUE constraint failed: seller_payouts.order_id, seller_payouts.seller_id"),
            )

    service = OrderPaymentService(db, ledger=RacedLedger(db))

    assert await service.process_payment_idempotent(make_order("order-r", 10000, (10000, seller_id))) is None


async def test_other_integrity_errors_propagate(db, seller_id):
    class CheckFailingLedger(PayoutLedgerService):
        async def create_for_order(self, order_id, entries):
            raise IntegrityError(
                "INSERT INTO seller_payouts",
                {},
                Exception("CHECK constraint failed: ck_seller_payouts_amount_positive"),
            )

    service = OrderPaymentService(db, ledger=CheckFailingLedger(db))

    with pytest.raises(IntegrityError):
        await service.process_payment_idempotent(make_order("order-k", 10000, (10000, seller_id)))


async def test_handle_order_paid_records_commission_history(db, make_seller, session_factory):
    seller_a = await make_seller("A", commission_rate="0.1333")
    seller_b = await make_seller("B")

    await make_service(db).handle_order_paid(
        make_order("order-h", 17550, (7550, seller_a), (10000, seller_b))
    )

    async with session_factory() as session:
        rows = (await session.execute(
            select(CommissionHistory).order_by(CommissionHistory.order_total)
        )).scalars().all()

    assert [(r.seller_id, r.order_total, r.commission_amount, r.seller_payout) for r in rows] == [
        (seller_a, 7550, 1006, 6544),
        (seller_b, 10000, 1500, 8500),
    ]
    assert rows[0].commission_rate == Decimal("0.1333")


async def test_handle_order_paid_twice_records_history_once(db, seller_id, session_factory):
    service = make_service(db)
    order = make_order("order-h", 10000, (10000, seller_id))

    assert await service.handle_order_paid(order) is not None
    assert await service.handle_order_paid(order) is None

    async with session_factory() as session:
        assert (await session.execute(select(func.count(CommissionHistory.id)))).scalar() == 1
