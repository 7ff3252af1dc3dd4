"""Rental endpoints (back office, authenticated, tenant scoped).

- POST /v1/rentals - Book against an existing payment intent
- GET /v1/rentals/{rental_id} - Read a rental
- DELETE /v1/rentals/{rental_id} - Cancel a rental
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from rentwise.api.dependencies import RequiredTenantId, get_rental_service
from rentwise.api.schemas.errors import APIError
from rentwise.api.schemas.rentals import CreateRentalRequest, RentalResponse
from rentwise.payments import QuoteRequest, RentalService

router = APIRouter(prefix="/rentals", tags=["rentals"])


@router.post(
    "",
    response_model=RentalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a rental",
    description="""
    Book the items for the caller's tenant and capture the referenced
    payment intent. The intent amount must equal the recomputed total.

    Retrying with the same idempotency_key returns the existing rental
    with 200; reusing the key for different inputs is a 409.
    """,
    responses={
        200: {"model": RentalResponse, "description": "Existing rental (idempotent replay)"},
        400: {"model": APIError, "description": "Invalid request or payment mismatch"},
        404: {"model": APIError, "description": "Unknown customer"},
        409: {"model": APIError, "description": "Insufficient availability or key reuse"},
    },
)
async def create_rental(
    body: CreateRentalRequest,
    response: Response,
    tenant_id: RequiredTenantId,
    rentals: Annotated[RentalService, Depends(get_rental_service)],
) -> RentalResponse:
    creation = await rentals.create_rental(
        tenant_id,
        body.customer_id,
        QuoteRequest(
            date_range=body.date_range,
            lines=tuple(item.to_line() for item in body.items),
        ),
        body.payment_intent_id,
        idempotency_key=body.idempotency_key,
        notes=body.notes,
    )
    if not creation.created:
        response.status_code = status.HTTP_200_OK
    return RentalResponse.from_rental(creation.rental)


@router.get(
    "/{rental_id}",
    response_model=RentalResponse,
    summary="Get a rental",
    responses={404: {"model": APIError, "description": "Rental not found"}},
)
async def get_rental(
    rental_id: UUID,
    tenant_id: RequiredTenantId,
    rentals: Annotated[RentalService, Depends(get_rental_service)],
) -> RentalResponse:
    return RentalResponse.from_rental(await rentals.get_rental(tenant_id, rental_id))


@router.delete(
    "/{rental_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel a rental",
    responses={
        404: {"model": APIError, "description": "Rental not found"},
        409: {"model": APIError, "description": "Rental already completed"},
    },
)
async def cancel_rental(
    rental_id: UUID,
    tenant_id: RequiredTenantId,
    rentals: Annotated[RentalService, Depends(get_rental_service)],
) -> Response:
    await rentals.cancel_rental(tenant_id, rental_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
