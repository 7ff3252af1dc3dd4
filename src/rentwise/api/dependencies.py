"""FastAPI dependencies for API endpoints.

Long-lived collaborators (settings, gateway, codec, reconciler) live on
app.state, set by create_app; per-request services are built here around
the request's database session.
"""

from typing import Annotated

from fastapi import Depends, Request

from rentwise.config.settings import Settings
from rentwise.core.context import RequestContext, get_current_context
from rentwise.db.dependencies import DbSession, OptionalTenantId, RequiredTenantId, TenantDb
from rentwise.payments import (
    AvailabilityService,
    CheckoutPayloadCodec,
    CheckoutService,
    HoldManager,
    PaymentCalculator,
    PaymentGateway,
    RentalService,
    WebhookReconciler,
)

__all__ = [
    "DbSession",
    "OptionalTenantId",
    "RequiredTenantId",
    "TenantDb",
    "AppSettings",
    "get_settings_from_app",
    "get_payment_gateway",
    "get_codec",
    "get_reconciler",
    "get_request_context",
    "get_request_id",
    "get_calculator",
    "get_availability_service",
    "get_hold_manager",
    "get_checkout_service",
    "get_rental_service",
]


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway


def get_codec(request: Request) -> CheckoutPayloadCodec:
    return request.app.state.codec


def get_reconciler(request: Request) -> WebhookReconciler:
    return request.app.state.reconciler


def get_request_context() -> RequestContext:
    """Get the current request context from ContextVar.

    This dependency requires RequestContextMiddleware to be active.

    Raises:
        ContextNotSetError: If middleware hasn't set the context
    """
    return get_current_context()


def get_request_id(request: Request) -> str:
    """Request ID (UUIDv7) assigned by RequestLoggingMiddleware."""
    return str(getattr(request.state, "request_id", "unknown"))


AppSettings = Annotated[Settings, Depends(get_settings_from_app)]


def get_calculator(db: DbSession) -> PaymentCalculator:
    return PaymentCalculator(db)


def get_availability_service(db: DbSession) -> AvailabilityService:
    return AvailabilityService(db)


def get_hold_manager(db: DbSession, settings: AppSettings) -> HoldManager:
    return HoldManager(db, settings.holds)


def get_checkout_service(
    db: DbSession,
    settings: AppSettings,
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    codec: Annotated[CheckoutPayloadCodec, Depends(get_codec)],
) -> CheckoutService:
    return CheckoutService(
        db,
        gateway,
        codec,
        currency=settings.DEFAULT_CURRENCY,
        checkout_base_url=settings.CHECKOUT_BASE_URL,
        session_ttl_hours=settings.CHECKOUT_SESSION_TTL_HOURS,
    )


def get_rental_service(
    db: DbSession,
    settings: AppSettings,
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
) -> RentalService:
    return RentalService(
        db,
        gateway,
        max_retries=settings.GATEWAY_MAX_RETRIES,
        backoff_seconds=settings.GATEWAY_RETRY_BACKOFF_SECONDS,
    )
