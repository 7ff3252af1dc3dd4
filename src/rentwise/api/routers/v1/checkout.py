"""Checkout endpoint.

- POST /v1/checkout/create-session - Open a hosted payment for a cart
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from rentwise.api.dependencies import get_checkout_service
from rentwise.api.schemas.checkout import CreateSessionRequest, CreateSessionResponse
from rentwise.api.schemas.errors import APIError
from rentwise.payments import CheckoutService

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post(
    "/create-session",
    response_model=CreateSessionResponse,
    summary="Create a checkout session",
    description="""
    Price the cart, open a payment intent carrying the reservation in its
    metadata and return the hosted checkout URL. Rentals are created when
    the processor reports the checkout as completed.

    Carts may span several tenants; each tenant gets its own rental.
    """,
    responses={
        400: {"model": APIError, "description": "Invalid cart or payload too large"},
        502: {"model": APIError, "description": "Payment processor error"},
    },
)
async def create_session(
    body: CreateSessionRequest,
    checkout: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> CreateSessionResponse:
    result = await checkout.create_session(
        body.to_quote_request(),
        customer_id=body.customer_id,
        customer_email=body.customer_email,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        notes=body.notes,
    )
    return CreateSessionResponse(
        session_id=result.session_id,
        url=result.url,
        expires_at=result.expires_at,
        total=result.total_amount,
        deposit=result.deposit_amount,
        client_secret=result.client_secret,
    )
