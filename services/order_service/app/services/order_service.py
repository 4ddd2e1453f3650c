"""Order service — idempotent order creation and event emission."""

from __future__ import annotations

from datetime import timedelta

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cancellation import CancelToken
from app.events.event import OrderCreatedEvent
from app.events.queue import EventPublisher, PublishOutcome
from app.models.order import Order
from app.repositories.errors import (
    IdempotencyRecordNotFoundError,
    IdempotencySerializationError,
    PersistenceError,
)
from app.repositories.idempotency_repository import IdempotencyRepository
from app.repositories.order_repository import OrderDraft, OrderRepository
from app.schemas.order import OrderCreate, OrderResponse

logger = structlog.get_logger()

DEFAULT_IDEMPOTENCY_VALIDITY = timedelta(minutes=10)


class OrderService:
    """Coordinates the two stores and the event publisher for one request.

    Holds no per-request state, so a single instance serves concurrent
    requests; each call works inside the session it is given.
    """

    def __init__(
        self,
        orders: OrderRepository,
        idempotency: IdempotencyRepository,
        publisher: EventPublisher,
        *,
        idempotency_validity: timedelta = DEFAULT_IDEMPOTENCY_VALIDITY,
    ) -> None:
        self._orders = orders
        self._idempotency = idempotency
        self._publisher = publisher
        self._validity = idempotency_validity

    async def create_order(
        self,
        session: AsyncSession,
        endpoint_name: str,
        endpoint_scheme: str,
        request: OrderCreate,
        cancel_token: CancelToken | None = None,
    ) -> OrderResponse:
        """Create an order at most once per live idempotency key.

        A live cached response is returned untouched. Otherwise the order and
        its idempotency record are committed together and a creation event is
        offered to the publisher without waiting. Only a failure to persist the
        order itself raises (:class:`PersistenceError`).
        """
        log = logger.bind(
            endpoint_name=endpoint_name,
            endpoint_scheme=endpoint_scheme,
            idempotency_key=request.idempotency_key,
        )

        saved = await self._saved_response(session, log, endpoint_name, endpoint_scheme, request)
        if saved is not None:
            log.info("idempotent_replay", order_id=saved.id)
            return saved

        draft = OrderDraft(
            customer_id=request.customer_id,
            product_id=request.product_id,
            quantity=request.quantity,
            total_price=request.total_price,
            order_time=request.order_time,
        )

        order = await self._create_row(session, draft)
        response = OrderResponse.model_validate(order)

        try:
            existing = await self._idempotency.put_if_absent(
                session,
                endpoint_name,
                endpoint_scheme,
                request.idempotency_key,
                response,
                self._validity,
            )
            if existing is not None:
                winner = self._decode(existing, log)
                if winner is not None:
                    # A concurrent request with the same key committed first
                    await session.rollback()
                    log.info("idempotency_race_lost", order_id=winner.id)
                    return winner
                await self._idempotency.put(
                    session,
                    endpoint_name,
                    endpoint_scheme,
                    request.idempotency_key,
                    response,
                    self._validity,
                )
        except IdempotencySerializationError as exc:
            log.warning("idempotency_store_failed", order_id=order.id, error=str(exc))
        except PersistenceError as exc:
            log.warning("idempotency_store_failed", order_id=order.id, error=str(exc))
            # The failed statement poisoned the transaction; persist the order alone
            await session.rollback()
            order = await self._create_row(session, draft)
            response = OrderResponse.model_validate(order)

        try:
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            log.error("order_commit_failed", order_id=order.id, error=str(exc))
            raise PersistenceError("failed to commit order") from exc

        log.info("order_created", order_id=order.id, customer_id=order.customer_id)

        self._emit(OrderCreatedEvent.from_order(order), cancel_token, log)
        return response

    async def get_order_by_id(self, session: AsyncSession, order_id: str) -> OrderResponse:
        """Fetch an order; :class:`OrderNotFoundError` passes through unchanged."""
        order = await self._orders.get_by_id(session, order_id)
        return OrderResponse.model_validate(order)

    async def _saved_response(
        self,
        session: AsyncSession,
        log: structlog.stdlib.BoundLogger,
        endpoint_name: str,
        endpoint_scheme: str,
        request: OrderCreate,
    ) -> OrderResponse | None:
        try:
            payload = await self._idempotency.get(
                session, endpoint_name, endpoint_scheme, request.idempotency_key
            )
        except IdempotencyRecordNotFoundError:
            return None
        except PersistenceError as exc:
            # Availability wins over strict enforcement while the store is degraded
            log.warning("idempotency_lookup_failed", error=str(exc))
            await session.rollback()
            return None

        return self._decode(payload, log)

    async def _create_row(self, session: AsyncSession, draft: OrderDraft) -> Order:
        try:
            return await self._orders.create(session, draft)
        except PersistenceError:
            await session.rollback()
            raise

    @staticmethod
    def _decode(
        payload: bytes, log: structlog.stdlib.BoundLogger
    ) -> OrderResponse | None:
        try:
            return OrderResponse.model_validate_json(payload)
        except ValidationError as exc:
            log.warning("idempotency_response_undecodable", error=str(exc))
            return None

    def _emit(
        self,
        event: OrderCreatedEvent,
        cancel_token: CancelToken | None,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        outcome = self._publisher.try_publish(event, cancel_token)
        if outcome is PublishOutcome.DELIVERED:
            log.info("order_created_event_emitted", order_id=event.order_id)
        elif outcome is PublishOutcome.CANCELLED:
            log.warning("order_created_event_cancelled", order_id=event.order_id)
        else:
            log.warning("event_queue_full", order_id=event.order_id)
