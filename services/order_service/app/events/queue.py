"""Bounded in-process event queue.

Producers never wait: :meth:`InMemoryEventQueue.try_publish` makes a single
attempt and reports one of three outcomes. The single consumer awaits
:meth:`InMemoryEventQueue.get`. Ordering is FIFO.
"""

from __future__ import annotations

import asyncio
import enum
from typing import Protocol

from app.core.cancellation import CancelToken
from app.events.event import OrderCreatedEvent


class PublishOutcome(str, enum.Enum):
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    DROPPED_FULL = "dropped_full"


class EventPublisher(Protocol):
    """What the order service needs from an event transport."""

    def try_publish(
        self, event: OrderCreatedEvent, cancel_token: CancelToken | None = None
    ) -> PublishOutcome: ...


class InMemoryEventQueue:
    def __init__(self, maxsize: int) -> None:
        if maxsize < 1:
            raise ValueError("event queue capacity must be at least 1")
        self._queue: asyncio.Queue[OrderCreatedEvent] = asyncio.Queue(maxsize=maxsize)

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def qsize(self) -> int:
        return self._queue.qsize()

    def try_publish(
        self, event: OrderCreatedEvent, cancel_token: CancelToken | None = None
    ) -> PublishOutcome:
        if cancel_token is not None and cancel_token.cancelled:
            return PublishOutcome.CANCELLED
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return PublishOutcome.DROPPED_FULL
        return PublishOutcome.DELIVERED

    async def get(self) -> OrderCreatedEvent:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()
