"""Shared fixtures: a throwaway SQLite database per test and a settable clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.database import Base
from app.events.queue import InMemoryEventQueue
from app.models import idempotency, order  # noqa: F401
from app.repositories.idempotency_repository import IdempotencyRepository
from app.repositories.order_repository import OrderRepository
from app.schemas.order import OrderCreate
from app.services.order_service import OrderService


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def order_repo(clock) -> OrderRepository:
    return OrderRepository(clock=clock)


@pytest.fixture
def idempotency_repo(clock) -> IdempotencyRepository:
    return IdempotencyRepository(clock=clock)


@pytest.fixture
def event_queue() -> InMemoryEventQueue:
    return InMemoryEventQueue(maxsize=10)


@pytest.fixture
def order_service(order_repo, idempotency_repo, event_queue) -> OrderService:
    return OrderService(order_repo, idempotency_repo, event_queue)


@pytest.fixture
def order_request() -> OrderCreate:
    return OrderCreate(
        customer_id="c1",
        product_id="p1",
        quantity=2,
        total_price="100.50",
        idempotency_key="k1",
    )
