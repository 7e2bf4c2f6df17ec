"""Shared fixtures: one SQLite file database per test."""

import uuid
from decimal import Decimal
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient

from sellerpay.database import build_engine, build_session_factory, get_db, init_db
from sellerpay.models.seller import MarketplaceSeller


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'sellerpay.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_seller(session_factory):
    """Factory creating a committed seller with an optional commission override."""

    async def _make_seller(name: str = "Test Seller", commission_rate: Optional[str] = None) -> uuid.UUID:
        async with session_factory() as session:
            seller = MarketplaceSeller(
                id=uuid.uuid4(),
                name=name,
                commission_rate=Decimal(commission_rate) if commission_rate is not None else None,
            )
            session.add(seller)
            await session.commit()
            return seller.id

    return _make_seller


@pytest.fixture
async def seller_id(make_seller):
    """Seller on the platform default rate."""
    return await make_seller("Default Rate Seller")


@pytest.fixture
async def client(session_factory):
    """HTTP client for the API with get_db bound to the test database."""
    from sellerpay.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
