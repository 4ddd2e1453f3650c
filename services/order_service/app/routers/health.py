"""Order Service — health endpoints with a database readiness probe."""

from __future__ import annotations

from fastapi import Request
from sqlalchemy import text

from shared.health import create_health_router


async def check_database(request: Request) -> bool:
    """Return True if the database is reachable."""
    async with request.app.state.engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


router = create_health_router(readiness_checks=[check_database])
