"""Order Service — application lifespan (startup / shutdown hooks)."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
from fastapi import FastAPI

from app.core.cancellation import CancelToken
from app.core.config import OrderServiceSettings
from app.core.database import build_engine, build_session_factory
from app.events.queue import InMemoryEventQueue
from app.events.worker import EventWorker
from app.repositories.idempotency_repository import IdempotencyRepository
from app.repositories.order_repository import OrderRepository
from app.services.maintenance import run_idempotency_cleanup
from app.services.order_service import OrderService

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire stores, queue and worker on startup; drain them on shutdown."""
    settings: OrderServiceSettings = app.state.settings
    log.info(
        "orders_service starting up",
        port=settings.server_port,
        db_host=settings.db_host if settings.database_url is None else None,
        event_queue_size=settings.event_queue_size,
    )

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    queue = InMemoryEventQueue(settings.event_queue_size)
    idempotency = IdempotencyRepository()

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.event_queue = queue
    app.state.order_service = OrderService(
        OrderRepository(),
        idempotency,
        queue,
        idempotency_validity=timedelta(seconds=settings.idempotency_ttl_seconds),
    )

    worker = EventWorker(queue, processing_delay=settings.event_processing_delay_seconds)
    app.state.event_worker = worker

    shutdown = CancelToken()
    tasks = [asyncio.create_task(worker.run(shutdown), name="event-worker")]
    if settings.idempotency_cleanup_interval_seconds > 0:
        tasks.append(
            asyncio.create_task(
                run_idempotency_cleanup(
                    session_factory,
                    idempotency,
                    interval=settings.idempotency_cleanup_interval_seconds,
                    cancel_token=shutdown,
                ),
                name="idempotency-cleanup",
            )
        )

    yield

    # Shutdown
    log.info("orders_service shutting down", pending_events=queue.qsize())
    worker.stop()
    shutdown.cancel()

    _, pending = await asyncio.wait(tasks, timeout=settings.shutdown_timeout_seconds)
    for task in pending:
        log.warning("background_task_forced_stop", task=task.get_name())
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    await engine.dispose()
    log.info("orders_service stopped")
