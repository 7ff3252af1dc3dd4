"""Payment quote endpoint.

- POST /v1/payments/quote - Price a cart without reserving anything
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from rentwise.api.dependencies import AppSettings, get_calculator
from rentwise.api.schemas.errors import APIError
from rentwise.api.schemas.payments import QuoteRequestBody, QuoteResponse
from rentwise.payments import PaymentCalculator

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/quote",
    response_model=QuoteResponse,
    summary="Price a cart",
    description="""
    Price the requested items over the date range and split the total and
    the 30% deposit across the tenants owning the products.

    Daily billing charges every started day (minimum one). Hourly billing
    applies to products with an hourly price when rental_type is hourly.
    """,
    responses={
        400: {"model": APIError, "description": "Invalid range, quantity or unknown product"},
    },
)
async def quote(
    body: QuoteRequestBody,
    settings: AppSettings,
    calculator: Annotated[PaymentCalculator, Depends(get_calculator)],
) -> QuoteResponse:
    computation = await calculator.compute(body.to_quote_request())
    return QuoteResponse.from_computation(computation, settings.DEFAULT_CURRENCY)
