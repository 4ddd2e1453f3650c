"""Errors raised by the persistence layer.

Driver exceptions never leave a repository unwrapped: callers only see the
types below, so the HTTP layer can tell "absent" apart from "broken".
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for persistence-layer failures."""


class OrderNotFoundError(RepositoryError):
    """No order exists with the requested id."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"order {order_id} not found")
        self.order_id = order_id


class IdempotencyRecordNotFoundError(RepositoryError):
    """No live idempotency record exists for the key triple."""


class PersistenceError(RepositoryError):
    """The database rejected or failed a read or write."""


class IdempotencySerializationError(RepositoryError):
    """A response could not be serialized for storage."""
