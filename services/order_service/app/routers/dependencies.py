"""Order API dependencies."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from fastapi import Request

from app.core.cancellation import CancelToken
from app.services.order_service import OrderService

_DISCONNECT_POLL_SECONDS = 0.05


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


async def request_cancel_token(request: Request) -> AsyncIterator[CancelToken]:
    """Yield a token that is cancelled once the client disconnects."""
    token = CancelToken()
    watcher = asyncio.create_task(_watch_disconnect(request, token))
    try:
        yield token
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher


async def _watch_disconnect(request: Request, token: CancelToken) -> None:
    while not token.cancelled:
        if await request.is_disconnected():
            token.cancel()
            return
        await asyncio.sleep(_DISCONNECT_POLL_SECONDS)
