"""Payment processor webhook endpoint.

- POST /v1/webhooks/payment-processor - Apply a processor event

The processor redelivers anything not acknowledged with a 2xx, so every
outcome except a transient failure is acknowledged, rejections included.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from rentwise.api.dependencies import AppSettings, get_reconciler
from rentwise.api.schemas.errors import APIError
from rentwise.api.schemas.webhooks import WebhookResponse
from rentwise.core.exceptions import MalformedPayloadError
from rentwise.observability.metrics import record_webhook_event
from rentwise.payments import WebhookReconciler, parse_processor_event
from rentwise.payments.events import SIGNATURE_HEADER
from rentwise.payments.reconciler import ReportStatus

logger = structlog.get_logger()

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post(
    "/payment-processor",
    response_model=WebhookResponse,
    summary="Receive a payment processor event",
    description="""
    Verify the Stripe-Signature header, decode the event and reconcile it.

    - checkout.session.completed: creates one rental per tenant in the
      checkout payload (idempotent on redelivery)
    - payment_intent.succeeded / payment_failed / canceled, charge.refunded:
      update the matching rentals
    - other types are acknowledged and ignored
    """,
    responses={
        200: {"description": "Event processed, ignored or rejected"},
        400: {"model": APIError, "description": "Invalid signature"},
        500: {"model": WebhookResponse, "description": "Transient failure, redeliver"},
    },
)
async def receive_processor_event(
    request: Request,
    settings: AppSettings,
    reconciler: Annotated[WebhookReconciler, Depends(get_reconciler)],
) -> JSONResponse:
    payload = await request.body()

    try:
        event = parse_processor_event(
            payload,
            request.headers.get(SIGNATURE_HEADER),
            settings.webhook_secret,
        )
    except MalformedPayloadError as e:
        logger.warning("webhook_envelope_rejected", error=str(e))
        record_webhook_event("unknown", ReportStatus.REJECTED.value)
        body = WebhookResponse(
            event_id="",
            event_type="unknown",
            status=ReportStatus.REJECTED.value,
            reason="malformed_envelope",
        )
        return JSONResponse(content=body.model_dump(mode="json"))

    report = await reconciler.handle(event)
    body = WebhookResponse.model_validate(report.to_dict())

    if report.should_retry:
        logger.warning("webhook_redelivery_requested", event_id=event.event_id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json"),
        )
    return JSONResponse(content=body.model_dump(mode="json"))
