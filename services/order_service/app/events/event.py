"""Order events handed from request handlers to the background worker."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal

from app.models.order import Order


@dataclass(frozen=True)
class OrderCreatedEvent:
    """Emitted once per newly persisted order. Never stored."""

    order_id: str
    customer_id: str
    product_id: str
    quantity: int
    total_price: Decimal
    timestamp: int = field(default_factory=lambda: int(time.time()))

    @classmethod
    def from_order(cls, order: Order) -> OrderCreatedEvent:
        return cls(
            order_id=order.id,
            customer_id=order.customer_id,
            product_id=order.product_id,
            quantity=order.quantity,
            total_price=order.total_price,
        )
