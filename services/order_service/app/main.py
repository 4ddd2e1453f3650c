"""Orders Service — FastAPI application factory.

Creates and serves orders backed by PostgreSQL, with idempotent creation and
an in-process event queue drained by a background worker.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.core.config import OrderServiceSettings, settings
from app.core.errors import register_exception_handlers
from app.core.events import lifespan
from app.core.tracing import instrument_app
from app.routers import health
from app.routers.orders import router as orders_router

from shared.logging import setup_logging
from shared.middleware import RequestContextMiddleware


def create_app(app_settings: OrderServiceSettings | None = None) -> FastAPI:
    """Construct and return the FastAPI application."""
    app_settings = app_settings or settings
    setup_logging(
        log_level=app_settings.log_level,
        json_logs=app_settings.json_logs,
        service_name=app_settings.service_name,
    )

    application = FastAPI(
        title="Orders Service",
        description="Order creation with idempotency keys and asynchronous processing.",
        version="0.1.0",
        servers=[{"url": app_settings.advertised_url}],
        lifespan=lifespan,
    )
    application.state.settings = app_settings

    register_exception_handlers(application)
    application.add_middleware(RequestContextMiddleware)
    application.include_router(health.router)
    application.include_router(orders_router)

    if app_settings.otel_enabled:
        instrument_app(application, app_settings.service_name)

    return application


app = create_app()
