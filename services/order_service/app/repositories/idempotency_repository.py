"""Idempotency store — cached responses keyed by endpoint identity and client key.

A record is addressed by ``(endpoint_name, endpoint_scheme, key)`` and is only
visible while ``valid_to`` lies in the future. Expired rows behave exactly like
missing rows until :meth:`IdempotencyRepository.purge_expired` removes them.
"""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.idempotency import IdempotencyKey
from app.repositories.errors import (
    IdempotencyRecordNotFoundError,
    IdempotencySerializationError,
    PersistenceError,
)
from app.repositories.order_repository import Clock, utcnow

logger = structlog.get_logger()

_KEY_COLUMNS = [
    IdempotencyKey.endpoint_name,
    IdempotencyKey.endpoint_scheme,
    IdempotencyKey.key,
]


def serialize_response(response: Any) -> bytes:
    """Encode a response as JSON bytes."""
    try:
        if isinstance(response, BaseModel):
            return response.model_dump_json().encode()
        return json.dumps(response, default=str).encode()
    except (TypeError, ValueError) as exc:
        raise IdempotencySerializationError(str(exc)) from exc


class IdempotencyRepository:
    """Stateless idempotency store; every call works inside the caller's session."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock

    async def get(
        self,
        session: AsyncSession,
        endpoint_name: str,
        endpoint_scheme: str,
        key: str,
    ) -> bytes:
        """Return the stored response bytes of a live record.

        Raises:
            IdempotencyRecordNotFoundError: no record, or its validity has passed.
            PersistenceError: the lookup itself failed.
        """
        stmt = select(IdempotencyKey.response).where(
            IdempotencyKey.endpoint_name == endpoint_name,
            IdempotencyKey.endpoint_scheme == endpoint_scheme,
            IdempotencyKey.key == key,
            IdempotencyKey.valid_to > self._clock(),
        )
        try:
            response = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error(
                "idempotency_get_failed",
                endpoint_name=endpoint_name,
                endpoint_scheme=endpoint_scheme,
                idempotency_key=key,
                error=str(exc),
            )
            raise PersistenceError("failed to get idempotency response") from exc

        if response is None:
            raise IdempotencyRecordNotFoundError(key)
        return bytes(response)

    async def put(
        self,
        session: AsyncSession,
        endpoint_name: str,
        endpoint_scheme: str,
        key: str,
        response: Any,
        validity: timedelta,
    ) -> None:
        """Upsert a record, replacing any previous response and expiry for the key."""
        stmt = self._insert(session, endpoint_name, endpoint_scheme, key, response, validity)
        stmt = stmt.on_conflict_do_update(
            index_elements=_KEY_COLUMNS,
            set_={
                "response": stmt.excluded.response,
                "valid_to": stmt.excluded.valid_to,
            },
        )
        await self._execute(session, stmt, endpoint_name, endpoint_scheme, key)

    async def put_if_absent(
        self,
        session: AsyncSession,
        endpoint_name: str,
        endpoint_scheme: str,
        key: str,
        response: Any,
        validity: timedelta,
    ) -> bytes | None:
        """Claim the key atomically.

        Writes the record when no row exists or the existing row has expired
        and returns ``None``. When another request already holds a live record,
        nothing is written and that record's response bytes are returned.
        """
        now = self._clock()
        stmt = self._insert(session, endpoint_name, endpoint_scheme, key, response, validity)
        stmt = stmt.on_conflict_do_update(
            index_elements=_KEY_COLUMNS,
            set_={
                "response": stmt.excluded.response,
                "valid_to": stmt.excluded.valid_to,
                "created_at": stmt.excluded.created_at,
            },
            where=IdempotencyKey.valid_to <= now,
        ).returning(IdempotencyKey.key)

        result = await self._execute(session, stmt, endpoint_name, endpoint_scheme, key)
        if result.first() is not None:
            return None

        existing = select(IdempotencyKey.response).where(
            IdempotencyKey.endpoint_name == endpoint_name,
            IdempotencyKey.endpoint_scheme == endpoint_scheme,
            IdempotencyKey.key == key,
        )
        try:
            return bytes((await session.execute(existing)).scalar_one())
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to read claimed idempotency record") from exc

    async def purge_expired(self, session: AsyncSession) -> int:
        """Delete records whose validity has passed; returns the number removed."""
        stmt = (
            delete(IdempotencyKey)
            .where(IdempotencyKey.valid_to <= self._clock())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError("failed to purge idempotency records") from exc
        return result.rowcount or 0

    def _insert(
        self,
        session: AsyncSession,
        endpoint_name: str,
        endpoint_scheme: str,
        key: str,
        response: Any,
        validity: timedelta,
    ):
        payload = serialize_response(response)
        now = self._clock()

        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            insert = postgresql.insert
        elif dialect == "sqlite":
            insert = sqlite.insert
        else:
            raise PersistenceError(f"upsert not supported on {dialect}")

        return insert(IdempotencyKey).values(
            endpoint_name=endpoint_name,
            endpoint_scheme=endpoint_scheme,
            key=key,
            response=payload,
            valid_to=now + validity,
            created_at=now,
        )

    async def _execute(
        self,
        session: AsyncSession,
        stmt,
        endpoint_name: str,
        endpoint_scheme: str,
        key: str,
    ):
        try:
            return await session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(
                "idempotency_store_failed",
                endpoint_name=endpoint_name,
                endpoint_scheme=endpoint_scheme,
                idempotency_key=key,
                error=str(exc),
            )
            raise PersistenceError("failed to store idempotency response") from exc
