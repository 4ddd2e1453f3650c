"""Order Service — OpenTelemetry instrumentation of the FastAPI app."""

from __future__ import annotations

import structlog
from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider

log = structlog.get_logger()


def instrument_app(app: FastAPI, service_name: str) -> TracerProvider:
    """Create a server span per request; health probes are not traced."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=provider,
        excluded_urls="healthz,readyz",
    )
    log.info("tracing_enabled", service=service_name)
    return provider
