"""Order store — writes and reads rows of the ``orders`` table."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.order import Order, OrderStatus
from app.repositories.errors import OrderNotFoundError, PersistenceError

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OrderDraft:
    """Caller-supplied fields of an order that does not exist yet."""

    customer_id: str
    product_id: str
    quantity: int
    total_price: Decimal
    order_time: datetime | None = None


class OrderRepository:
    """Stateless order store; every call works inside the caller's session."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock

    async def create(self, session: AsyncSession, draft: OrderDraft) -> Order:
        """Insert a new order and flush it.

        The id, status and timestamps are assigned here. The row becomes
        durable when the caller commits the session.
        """
        now = self._clock()
        order = Order(
            id=str(uuid.uuid4()),
            customer_id=draft.customer_id,
            product_id=draft.product_id,
            quantity=draft.quantity,
            total_price=draft.total_price,
            status=OrderStatus.CREATED.value,
            order_time=draft.order_time or now,
            created_at=now,
            updated_at=now,
        )

        session.add(order)
        try:
            await session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "order_create_failed",
                customer_id=draft.customer_id,
                error=str(exc),
            )
            raise PersistenceError("failed to create order") from exc

        logger.debug("order_flushed", order_id=order.id)
        return order

    async def get_by_id(self, session: AsyncSession, order_id: str) -> Order:
        """Fetch one order or raise :class:`OrderNotFoundError`."""
        try:
            result = await session.execute(select(Order).where(Order.id == order_id))
            order = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("order_get_failed", order_id=order_id, error=str(exc))
            raise PersistenceError("failed to get order") from exc

        if order is None:
            raise OrderNotFoundError(order_id)
        return order
