"""Background worker draining the in-process event queue."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from app.core.cancellation import CancelToken
from app.events.event import OrderCreatedEvent
from app.events.queue import InMemoryEventQueue

logger = structlog.get_logger()

EventHandler = Callable[[OrderCreatedEvent], Awaitable[None]]


class EventWorker:
    """Sole consumer of an :class:`InMemoryEventQueue`.

    ``run`` exits when either the owner's token or :meth:`stop` fires. An
    event already being processed is finished first.
    """

    def __init__(
        self,
        queue: InMemoryEventQueue,
        handler: EventHandler | None = None,
        *,
        processing_delay: float = 0.1,
    ) -> None:
        self._queue = queue
        self._handler = handler or self._simulate_downstream
        self._processing_delay = processing_delay
        self._stop = CancelToken()
        self.processed = 0

    def stop(self) -> None:
        self._stop.cancel()

    async def run(self, cancel_token: CancelToken | None = None) -> None:
        parents = [self._stop] if cancel_token is None else [self._stop, cancel_token]
        token = CancelToken.linked(*parents)
        shutdown = asyncio.ensure_future(token.wait())

        logger.info("event_worker_started", queue_capacity=self._queue.maxsize)
        try:
            while True:
                receive = asyncio.ensure_future(self._queue.get())
                done, _ = await asyncio.wait(
                    {receive, shutdown}, return_when=asyncio.FIRST_COMPLETED
                )

                if receive in done:
                    await self._process(receive.result())
                else:
                    receive.cancel()

                if token.cancelled:
                    reason = "stop_requested" if self._stop.cancelled else "context_cancelled"
                    logger.info("event_worker_stopping", reason=reason, pending=self._queue.qsize())
                    return
        finally:
            shutdown.cancel()

    async def _process(self, event: OrderCreatedEvent) -> None:
        log = logger.bind(order_id=event.order_id)
        log.info(
            "order_created_event_processing",
            customer_id=event.customer_id,
            quantity=event.quantity,
            total_price=float(event.total_price),
        )
        try:
            await self._handler(event)
        except Exception:
            log.exception("order_created_event_failed")
        else:
            log.info("order_created_event_processed")
        finally:
            self.processed += 1
            self._queue.task_done()

    async def _simulate_downstream(self, event: OrderCreatedEvent) -> None:
        """Stand-in for notifications, inventory updates and downstream triggers."""
        await asyncio.sleep(self._processing_delay)
