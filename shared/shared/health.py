"""Reusable health-check router.

Provides ``/healthz`` (static liveness, touches nothing) and ``/readyz``
(readiness). The readiness probe accepts async callables that must all
succeed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, Request, Response, status

HealthCheck = Callable[[Request], Awaitable[bool]]


def create_health_router(
    readiness_checks: list[HealthCheck] | None = None,
) -> APIRouter:
    """Build a health router with optional readiness probes.

    Args:
        readiness_checks: Async callables taking the request and returning
            True if the dependency is healthy.

    Returns:
        A FastAPI ``APIRouter`` with ``/healthz`` and ``/readyz``.
    """
    router = APIRouter(tags=["health"])
    checks = readiness_checks or []

    @router.get("/healthz", summary="Health check")
    async def healthz() -> dict[str, str]:
        return {"status": "healthy"}

    @router.get("/readyz", summary="Readiness probe")
    async def readyz(request: Request, response: Response) -> dict[str, Any]:
        results: dict[str, str] = {}
        all_ok = True

        for check in checks:
            name = getattr(check, "__name__", str(check))
            try:
                ok = await check(request)
                results[name] = "ok" if ok else "failing"
                if not ok:
                    all_ok = False
            except Exception as exc:
                results[name] = f"error: {exc}"
                all_ok = False

        if not all_ok:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

        return {"status": "ready" if all_ok else "unavailable", "checks": results}

    return router
