"""Cooperative cancellation tokens.

A token is cancelled once and stays cancelled. ``CancelToken.linked`` builds a
token that fires when any of its parents fires, so a consumer can watch one
token instead of several shutdown sources.
"""

from __future__ import annotations

import asyncio


class CancelToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._children: list[CancelToken] = []

    @classmethod
    def linked(cls, *parents: CancelToken) -> CancelToken:
        """Return a token cancelled as soon as any parent is cancelled."""
        token = cls()
        for parent in parents:
            if parent.cancelled:
                token.cancel()
            parent._children.append(token)
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        if self._event.is_set():
            return
        self._event.set()
        for child in self._children:
            child.cancel()

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()
