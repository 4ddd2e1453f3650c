"""Order API routes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cancellation import CancelToken
from app.core.database import get_session
from app.repositories.errors import OrderNotFoundError, PersistenceError
from app.routers.dependencies import get_order_service, request_cancel_token
from app.schemas.order import ErrorResponse, OrderCreate, OrderResponse
from app.services.order_service import OrderService

logger = structlog.get_logger()

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def create_order(
    payload: OrderCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    cancel_token: CancelToken = Depends(request_cancel_token),
) -> OrderResponse:
    """Create an order; repeating an idempotency key replays the first response."""
    try:
        order = await service.create_order(
            session,
            endpoint_name=request.url.path,
            endpoint_scheme=request.method,
            request=payload,
            cancel_token=cancel_token,
        )
    except PersistenceError as exc:
        logger.error("order_create_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order",
        ) from exc

    return order


@router.get("", include_in_schema=False)
@router.get("/", include_in_schema=False)
async def missing_order_id() -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Order ID is required",
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def get_order(
    order_id: str,
    session: AsyncSession = Depends(get_session),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    """Get a single order by ID."""
    if not order_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order ID is required",
        )

    try:
        return await service.get_order_by_id(session, order_id)
    except OrderNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        ) from exc
    except PersistenceError as exc:
        logger.error("order_get_failed", order_id=order_id, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve order",
        ) from exc
