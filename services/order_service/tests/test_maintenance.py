"""Expired idempotency record cleanup."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.cancellation import CancelToken
from app.models.idempotency import IdempotencyKey
from app.services.maintenance import (
    purge_expired_idempotency_keys,
    run_idempotency_cleanup,
)


@pytest.mark.asyncio
async def test_purge_commits_removal(session_factory, idempotency_repo, clock):
    async with session_factory() as session:
        await idempotency_repo.put(session, "/orders", "POST", "k1", {"id": "o-1"}, timedelta(minutes=10))
        await session.commit()
    clock.advance(minutes=15)

    removed = await purge_expired_idempotency_keys(session_factory, idempotency_repo)

    assert removed == 1
    async with session_factory() as session:
        remaining = (await session.execute(select(func.count()).select_from(IdempotencyKey))).scalar_one()
    assert remaining == 0


@pytest.mark.asyncio
async def test_cleanup_loop_exits_on_cancel(session_factory, idempotency_repo):
    token = CancelToken()
    task = asyncio.create_task(
        run_idempotency_cleanup(
            session_factory, idempotency_repo, interval=60, cancel_token=token
        )
    )
    await asyncio.sleep(0)

    token.cancel()

    await asyncio.wait_for(task, timeout=1)
