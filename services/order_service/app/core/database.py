"""Order Service — async SQLAlchemy engine, session factory and dependency."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import OrderServiceSettings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def build_engine(settings: OrderServiceSettings) -> AsyncEngine:
    """Create the pooled async engine described by ``settings``."""
    url = settings.sqlalchemy_url
    kwargs: dict = {"pool_pre_ping": True}

    if settings.database_url is None:
        # asyncpg takes libpq-style sslmode names through ``ssl``
        kwargs["connect_args"] = {"ssl": settings.db_sslmode}

    if not str(url).startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
        )

    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield one session per request from the factory built at startup."""
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        yield session
