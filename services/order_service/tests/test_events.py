"""Event queue outcomes and worker lifecycle."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from app.core.cancellation import CancelToken
from app.events.event import OrderCreatedEvent
from app.events.queue import InMemoryEventQueue, PublishOutcome
from app.events.worker import EventWorker


def _event(order_id: str) -> OrderCreatedEvent:
    return OrderCreatedEvent(
        order_id=order_id,
        customer_id="c1",
        product_id="p1",
        quantity=1,
        total_price=Decimal("9.99"),
    )


class TestInMemoryEventQueue:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            InMemoryEventQueue(maxsize=0)

    def test_delivers_until_full(self):
        queue = InMemoryEventQueue(maxsize=2)

        assert queue.try_publish(_event("a")) is PublishOutcome.DELIVERED
        assert queue.try_publish(_event("b")) is PublishOutcome.DELIVERED
        assert queue.try_publish(_event("c")) is PublishOutcome.DROPPED_FULL
        assert queue.qsize() == 2

    def test_cancelled_token_drops_even_with_room(self):
        queue = InMemoryEventQueue(maxsize=2)
        token = CancelToken()
        token.cancel()

        assert queue.try_publish(_event("a"), token) is PublishOutcome.CANCELLED
        assert queue.qsize() == 0

    @pytest.mark.asyncio
    async def test_fifo_order(self):
        queue = InMemoryEventQueue(maxsize=3)
        for order_id in ("a", "b", "c"):
            queue.try_publish(_event(order_id))

        received = [(await queue.get()).order_id for _ in range(3)]

        assert received == ["a", "b", "c"]


class TestEventWorker:
    @pytest.mark.asyncio
    async def test_processes_events_in_order_then_stops(self):
        queue = InMemoryEventQueue(maxsize=10)
        seen: list[str] = []

        async def handler(event: OrderCreatedEvent) -> None:
            seen.append(event.order_id)

        worker = EventWorker(queue, handler)
        task = asyncio.create_task(worker.run())
        for order_id in ("a", "b", "c"):
            queue.try_publish(_event(order_id))

        while worker.processed < 3:
            await asyncio.sleep(0)
        worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert seen == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_owner_token_stops_worker(self):
        worker = EventWorker(InMemoryEventQueue(maxsize=1), processing_delay=0)
        owner = CancelToken()
        task = asyncio.create_task(worker.run(owner))
        await asyncio.sleep(0)

        owner.cancel()

        await asyncio.wait_for(task, timeout=1)
        assert worker.processed == 0

    @pytest.mark.asyncio
    async def test_handler_failure_does_not_stop_the_loop(self):
        queue = InMemoryEventQueue(maxsize=10)
        seen: list[str] = []

        async def handler(event: OrderCreatedEvent) -> None:
            if event.order_id == "bad":
                raise RuntimeError("downstream unavailable")
            seen.append(event.order_id)

        worker = EventWorker(queue, handler)
        task = asyncio.create_task(worker.run())
        queue.try_publish(_event("bad"))
        queue.try_publish(_event("good"))

        while worker.processed < 2:
            await asyncio.sleep(0)
        worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert seen == ["good"]

    @pytest.mark.asyncio
    async def test_in_flight_event_finishes_before_exit(self):
        queue = InMemoryEventQueue(maxsize=10)
        started = asyncio.Event()
        release = asyncio.Event()
        finished: list[str] = []

        async def handler(event: OrderCreatedEvent) -> None:
            started.set()
            await release.wait()
            finished.append(event.order_id)

        worker = EventWorker(queue, handler)
        task = asyncio.create_task(worker.run())
        queue.try_publish(_event("a"))
        queue.try_publish(_event("b"))

        await started.wait()
        worker.stop()
        release.set()
        await asyncio.wait_for(task, timeout=1)

        assert finished == ["a"]
        assert queue.qsize() == 1

    @pytest.mark.asyncio
    async def test_default_handler_sleeps_for_processing_delay(self):
        queue = InMemoryEventQueue(maxsize=1)
        worker = EventWorker(queue, processing_delay=0.01)
        task = asyncio.create_task(worker.run())
        queue.try_publish(_event("a"))

        while worker.processed < 1:
            await asyncio.sleep(0.005)
        worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert queue.qsize() == 0


class TestCancelToken:
    def test_linked_token_fires_on_any_parent(self):
        first, second = CancelToken(), CancelToken()
        linked = CancelToken.linked(first, second)

        second.cancel()

        assert linked.cancelled
        assert not first.cancelled

    def test_linked_to_cancelled_parent_starts_cancelled(self):
        parent = CancelToken()
        parent.cancel()

        assert CancelToken.linked(parent).cancelled

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self):
        token = CancelToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()

        await asyncio.wait_for(waiter, timeout=1)
