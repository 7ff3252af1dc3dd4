"""Inventory endpoints.

- GET /v1/products/{product_id}/availability - Capacity over a range
- POST /v1/holds - Place a reservation hold
- DELETE /v1/holds/{hold_id} - Release a hold
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from rentwise.api.dependencies import DbSession, get_availability_service, get_hold_manager
from rentwise.api.schemas.common import as_utc
from rentwise.api.schemas.errors import APIError
from rentwise.api.schemas.inventory import AvailabilityResponse, CreateHoldRequest, HoldResponse
from rentwise.core.exceptions import (
    HoldNotFoundError,
    InvalidDateRangeError,
    InvalidQuantityError,
)
from rentwise.payments import AvailabilityService, DateRange, HoldManager

router = APIRouter(tags=["inventory"])


@router.get(
    "/products/{product_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check product availability",
    responses={
        400: {"model": APIError, "description": "Invalid range or quantity"},
        404: {"model": APIError, "description": "Unknown product"},
    },
)
async def get_availability(
    product_id: UUID,
    service: Annotated[AvailabilityService, Depends(get_availability_service)],
    start: Annotated[datetime, Query(description="Range start")],
    end: Annotated[datetime, Query(description="Range end, exclusive")],
    quantity: Annotated[int, Query(description="Units wanted")] = 1,
) -> AvailabilityResponse:
    """Units committed to rentals overlapping [start, end) against capacity."""
    date_range = DateRange(as_utc(start), as_utc(end))
    if not date_range.is_valid:
        raise InvalidDateRangeError(date_range.start, date_range.end)
    if quantity <= 0:
        raise InvalidQuantityError(product_id, quantity)

    result = await service.check(product_id, date_range, quantity)
    return AvailabilityResponse.from_result(result, date_range.start, date_range.end)


@router.post(
    "/holds",
    response_model=HoldResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place a reservation hold",
    description="""
    Hold product units while a customer completes payment. Holds are
    advisory: they expire after ttl_minutes and never block a booking.
    """,
    responses={
        400: {"model": APIError, "description": "Invalid range, quantity or TTL"},
        404: {"model": APIError, "description": "Unknown product"},
    },
)
async def create_hold(
    body: CreateHoldRequest,
    db: DbSession,
    holds: Annotated[HoldManager, Depends(get_hold_manager)],
) -> HoldResponse:
    hold = await holds.create_hold(
        body.product_id,
        body.quantity,
        body.date_range,
        ttl_minutes=body.ttl_minutes,
        customer_id=body.customer_id,
        session_id=body.session_id,
    )
    await db.commit()
    return HoldResponse(id=hold.hold_id, expires_at=hold.expires_at)


@router.delete(
    "/holds/{hold_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Release a reservation hold",
    responses={404: {"model": APIError, "description": "No such hold"}},
)
async def delete_hold(
    hold_id: UUID,
    db: DbSession,
    holds: Annotated[HoldManager, Depends(get_hold_manager)],
) -> Response:
    if not await holds.delete_hold(hold_id):
        raise HoldNotFoundError(hold_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
