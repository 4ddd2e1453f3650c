"""Order service — periodic removal of expired idempotency records."""

from __future__ import annotations

import asyncio

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.cancellation import CancelToken
from app.repositories.idempotency_repository import IdempotencyRepository

logger = structlog.get_logger()


async def purge_expired_idempotency_keys(
    session_factory: async_sessionmaker[AsyncSession],
    repository: IdempotencyRepository,
) -> int:
    """Run one purge in its own transaction; returns the number of rows removed."""
    async with session_factory() as session:
        removed = await repository.purge_expired(session)
        await session.commit()
    if removed:
        logger.info("idempotency_keys_purged", removed=removed)
    return removed


async def run_idempotency_cleanup(
    session_factory: async_sessionmaker[AsyncSession],
    repository: IdempotencyRepository,
    *,
    interval: float,
    cancel_token: CancelToken,
) -> None:
    """Purge every ``interval`` seconds until ``cancel_token`` fires."""
    logger.info("idempotency_cleanup_started", interval_seconds=interval)
    while not cancel_token.cancelled:
        try:
            await asyncio.wait_for(cancel_token.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
        else:
            break

        try:
            await purge_expired_idempotency_keys(session_factory, repository)
        except Exception:
            logger.exception("idempotency_cleanup_failed")

    logger.info("idempotency_cleanup_stopped")
