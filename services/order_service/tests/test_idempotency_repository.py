"""Idempotency store: expiry filtering, upsert and atomic claim."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.models.idempotency import IdempotencyKey
from app.repositories.errors import (
    IdempotencyRecordNotFoundError,
    IdempotencySerializationError,
)

TEN_MINUTES = timedelta(minutes=10)
ENDPOINT = ("/orders", "POST")


@pytest.mark.asyncio
async def test_get_missing_record_raises_not_found(session, idempotency_repo):
    with pytest.raises(IdempotencyRecordNotFoundError):
        await idempotency_repo.get(session, *ENDPOINT, "k1")


@pytest.mark.asyncio
async def test_put_then_get_returns_serialized_response(session, idempotency_repo):
    await idempotency_repo.put(session, *ENDPOINT, "k1", {"id": "o-1"}, TEN_MINUTES)
    await session.commit()

    payload = await idempotency_repo.get(session, *ENDPOINT, "k1")

    assert json.loads(payload) == {"id": "o-1"}


@pytest.mark.asyncio
async def test_key_is_scoped_by_endpoint_identity(session, idempotency_repo):
    await idempotency_repo.put(session, *ENDPOINT, "k1", {"id": "o-1"}, TEN_MINUTES)

    with pytest.raises(IdempotencyRecordNotFoundError):
        await idempotency_repo.get(session, "/orders", "PUT", "k1")
    with pytest.raises(IdempotencyRecordNotFoundError):
        await idempotency_repo.get(session, "/payments", "POST", "k1")


@pytest.mark.asyncio
async def test_expired_record_is_indistinguishable_from_absent(session, idempotency_repo, clock):
    await idempotency_repo.put(session, *ENDPOINT, "k1", {"id": "o-1"}, TEN_MINUTES)
    await session.commit()

    clock.advance(minutes=10)

    with pytest.raises(IdempotencyRecordNotFoundError):
        await idempotency_repo.get(session, *ENDPOINT, "k1")


@pytest.mark.asyncio
async def test_put_overwrites_response_and_expiry(session, idempotency_repo, clock):
    await idempotency_repo.put(session, *ENDPOINT, "k1", {"id": "o-1"}, TEN_MINUTES)
    clock.advance(minutes=9)
    await idempotency_repo.put(session, *ENDPOINT, "k1", {"id": "o-2"}, TEN_MINUTES)
    await session.commit()

    clock.advance(minutes=5)
    payload = await idempotency_repo.get(session, *ENDPOINT, "k1")

    assert json.loads(payload) == {"id": "o-2"}
    rows = (await session.execute(select(func.count()).select_from(IdempotencyKey))).scalar_one()
    assert rows == 1


@pytest.mark.asyncio
async def test_put_if_absent_claims_fresh_key(session, idempotency_repo):
    existing = await idempotency_repo.put_if_absent(
        session, *ENDPOINT, "k1", {"id": "o-1"}, TEN_MINUTES
    )

    assert existing is None
    assert json.loads(await idempotency_repo.get(session, *ENDPOINT, "k1")) == {"id": "o-1"}


@pytest.mark.asyncio
async def test_put_if_absent_returns_live_holder(session, idempotency_repo):
    await idempotency_repo.put(session, *ENDPOINT, "k1", {"id": "winner"}, TEN_MINUTES)
    await session.commit()

    existing = await idempotency_repo.put_if_absent(
        session, *ENDPOINT, "k1", {"id": "loser"}, TEN_MINUTES
    )

    assert json.loads(existing) == {"id": "winner"}
    assert json.loads(await idempotency_repo.get(session, *ENDPOINT, "k1")) == {"id": "winner"}


@pytest.mark.asyncio
async def test_put_if_absent_takes_over_expired_record(session, idempotency_repo, clock):
    await idempotency_repo.put(session, *ENDPOINT, "k1", {"id": "stale"}, TEN_MINUTES)
    await session.commit()
    clock.advance(minutes=11)

    existing = await idempotency_repo.put_if_absent(
        session, *ENDPOINT, "k1", {"id": "fresh"}, TEN_MINUTES
    )

    assert existing is None
    assert json.loads(await idempotency_repo.get(session, *ENDPOINT, "k1")) == {"id": "fresh"}


@pytest.mark.asyncio
async def test_purge_expired_removes_only_stale_rows(session, idempotency_repo, clock):
    await idempotency_repo.put(session, *ENDPOINT, "old", {"id": "o-1"}, timedelta(minutes=1))
    await idempotency_repo.put(session, *ENDPOINT, "new", {"id": "o-2"}, TEN_MINUTES)
    await session.commit()
    clock.advance(minutes=2)

    removed = await idempotency_repo.purge_expired(session)
    await session.commit()

    assert removed == 1
    assert json.loads(await idempotency_repo.get(session, *ENDPOINT, "new")) == {"id": "o-2"}


@pytest.mark.asyncio
async def test_unserializable_response_is_reported(session, idempotency_repo):
    circular: list = []
    circular.append(circular)

    with pytest.raises(IdempotencySerializationError):
        await idempotency_repo.put(session, *ENDPOINT, "k1", circular, TEN_MINUTES)
