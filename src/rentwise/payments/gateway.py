"""Payment gateway abstraction.

PaymentGateway is the seam between booking code and the external payment
processor. Two adapters ship:

- MockPaymentGateway: in-memory intents for development and tests
- StripePaymentGateway: the stripe SDK, amounts in minor units

Every call takes the caller's tenant; an intent owned by another tenant
is reported as missing.
"""

import asyncio
import hashlib
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

import stripe
import structlog

from rentwise.config.settings import PaymentProvider, Settings
from rentwise.core.exceptions import PaymentGatewayError
from rentwise.core.logging import log_external_call
from rentwise.db.models.base import utc_now
from rentwise.db.models.rental import PaymentStatus
from rentwise.observability.metrics import record_gateway_call
from rentwise.payments.types import from_minor_units, round_money, to_minor_units

logger = structlog.get_logger()

TENANT_IDS_METADATA_KEY = "tenant_ids"
REFUND_REASONS = frozenset({"duplicate", "fraudulent", "requested_by_customer"})
STRIPE_INTENT_LIFETIME = timedelta(hours=24)


@dataclass
class PaymentIntent:
    """Processor-side payment intent as seen by booking code.

    Attributes:
        id: Local identifier
        reference: Processor identifier (pi_...)
        tenant_id: Owning tenant, None for multi-tenant checkouts
    """

    id: UUID
    reference: str
    tenant_id: UUID | None
    amount: Decimal
    deposit_amount: Decimal
    currency: str
    status: PaymentStatus
    client_secret: str | None
    created_at: datetime
    expires_at: datetime
    metadata: dict[str, str] = field(default_factory=dict)
    refunded_amount: Decimal | None = None

    @property
    def participant_tenant_ids(self) -> set[str]:
        raw = self.metadata.get(TENANT_IDS_METADATA_KEY, "")
        return {part for part in raw.split(",") if part}

    def visible_to(self, tenant_id: UUID | None) -> bool:
        """Whether a caller acting for tenant_id may see this intent.

        A caller without a tenant sees nothing.
        """
        if tenant_id is None:
            return False
        if self.tenant_id == tenant_id:
            return True
        if self.tenant_id is None:
            return str(tenant_id) in self.participant_tenant_ids
        return False


class PaymentGateway(Protocol):
    """Operations booking code needs from a payment processor."""

    @property
    def provider(self) -> str: ...

    async def create_intent(
        self,
        tenant_id: UUID | None,
        amount: Decimal,
        deposit_amount: Decimal,
        currency: str,
        metadata: Mapping[str, str] | None = None,
    ) -> PaymentIntent: ...

    async def get_intent(self, tenant_id: UUID | None, reference: str) -> PaymentIntent | None: ...

    async def capture(self, tenant_id: UUID | None, reference: str) -> bool: ...

    async def cancel(self, tenant_id: UUID | None, reference: str) -> bool: ...

    async def refund(
        self,
        tenant_id: UUID | None,
        reference: str,
        amount: Decimal | None = None,
        reason: str | None = None,
    ) -> bool: ...


def _check_refund_reason(reason: str | None) -> None:
    if reason is not None and reason not in REFUND_REASONS:
        raise ValueError(f"Unsupported refund reason: {reason}")


# =============================================================================
# Mock adapter
# =============================================================================


class MockPaymentGateway:
    """In-memory gateway.

    Intents live in a dict owned by the instance and expire after
    ttl_minutes; expired intents are dropped when read.
    """

    provider = "mock"

    def __init__(
        self,
        ttl_minutes: int = 30,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock
        self._intents: dict[str, PaymentIntent] = {}
        self._lock = asyncio.Lock()

    async def create_intent(
        self,
        tenant_id: UUID | None,
        amount: Decimal,
        deposit_amount: Decimal,
        currency: str,
        metadata: Mapping[str, str] | None = None,
    ) -> PaymentIntent:
        reference = f"pi_mock_{uuid.uuid4().hex}"
        now = self._clock()
        intent = PaymentIntent(
            id=uuid.uuid4(),
            reference=reference,
            tenant_id=tenant_id,
            amount=round_money(amount),
            deposit_amount=round_money(deposit_amount),
            currency=currency.lower(),
            status=PaymentStatus.REQUIRES_PAYMENT_METHOD,
            client_secret=f"mock_secret_{reference}",
            created_at=now,
            expires_at=now + self.ttl,
            metadata=dict(metadata or {}),
        )
        async with self._lock:
            self._intents[reference] = intent

        logger.debug("mock_intent_created", reference=reference, amount=str(intent.amount))
        return replace(intent)

    def _visible(self, tenant_id: UUID | None, reference: str) -> PaymentIntent | None:
        # Caller must hold self._lock
        intent = self._intents.get(reference)
        if intent is None:
            return None
        if intent.expires_at <= self._clock():
            del self._intents[reference]
            logger.debug("mock_intent_expired", reference=reference)
            return None
        if not intent.visible_to(tenant_id):
            return None
        return intent

    async def get_intent(self, tenant_id: UUID | None, reference: str) -> PaymentIntent | None:
        async with self._lock:
            intent = self._visible(tenant_id, reference)
            return replace(intent) if intent else None

    async def peek(self, reference: str) -> PaymentIntent | None:
        """Unscoped lookup for inspecting the mock from tests and local tooling."""
        async with self._lock:
            intent = self._intents.get(reference)
            return replace(intent) if intent else None

    async def capture(self, tenant_id: UUID | None, reference: str) -> bool:
        async with self._lock:
            intent = self._visible(tenant_id, reference)
            if intent is None:
                return False
            if intent.status == PaymentStatus.SUCCEEDED:
                return True
            if not intent.status.is_cancelable:
                return False
            intent.status = PaymentStatus.SUCCEEDED
            return True

    async def cancel(self, tenant_id: UUID | None, reference: str) -> bool:
        async with self._lock:
            intent = self._visible(tenant_id, reference)
            if intent is None or not intent.status.is_cancelable:
                return False
            intent.status = PaymentStatus.CANCELED
            return True

    async def refund(
        self,
        tenant_id: UUID | None,
        reference: str,
        amount: Decimal | None = None,
        reason: str | None = None,
    ) -> bool:
        _check_refund_reason(reason)
        async with self._lock:
            intent = self._visible(tenant_id, reference)
            if intent is None or intent.status != PaymentStatus.SUCCEEDED:
                return False
            intent.status = PaymentStatus.CANCELED
            intent.refunded_amount = round_money(amount) if amount is not None else intent.amount
            logger.info(
                "mock_intent_refunded",
                reference=reference,
                amount=str(intent.refunded_amount),
                reason=reason,
            )
            return True


# =============================================================================
# Stripe adapter
# =============================================================================


def reference_to_uuid(reference: str) -> UUID:
    """Deterministic local id for a processor reference."""
    return UUID(bytes=hashlib.sha256(reference.encode()).digest()[:16])


class StripePaymentGateway:
    """Gateway backed by the stripe SDK.

    SDK calls are blocking and run in a worker thread.
    """

    provider = "stripe"

    def __init__(self, api_key: str, client: stripe.StripeClient | None = None):
        self._client = client or stripe.StripeClient(api_key)

    async def _call(
        self,
        operation: str,
        reference: str | None,
        fn: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        start = time.perf_counter()
        success = False
        try:
            result = await asyncio.to_thread(fn, *args, **kwargs)
            success = True
            return result
        except stripe.StripeError as e:
            raise PaymentGatewayError(
                e.user_message or str(e), operation=operation, reference=reference
            ) from e
        finally:
            duration = time.perf_counter() - start
            record_gateway_call(self.provider, operation, duration, success)
            log_external_call(
                logger,
                service="stripe",
                operation=operation,
                duration_ms=duration * 1000,
                success=success,
                reference=reference,
            )

    def _to_intent(self, obj: Any) -> PaymentIntent:
        metadata = {key: str(value) for key, value in dict(obj.metadata or {}).items()}
        tenant_raw = metadata.get("tenant_id")
        created_at = datetime.fromtimestamp(obj.created, tz=timezone.utc)
        return PaymentIntent(
            id=reference_to_uuid(obj.id),
            reference=obj.id,
            tenant_id=UUID(tenant_raw) if tenant_raw else None,
            amount=from_minor_units(obj.amount),
            deposit_amount=Decimal(metadata.get("deposit_amount", "0.00")),
            currency=obj.currency,
            status=PaymentStatus(obj.status),
            client_secret=obj.client_secret,
            created_at=created_at,
            expires_at=created_at + STRIPE_INTENT_LIFETIME,
            metadata=metadata,
        )

    async def create_intent(
        self,
        tenant_id: UUID | None,
        amount: Decimal,
        deposit_amount: Decimal,
        currency: str,
        metadata: Mapping[str, str] | None = None,
    ) -> PaymentIntent:
        intent_metadata = {
            **dict(metadata or {}),
            "tenant_id": str(tenant_id) if tenant_id else "",
            "deposit_amount": str(round_money(deposit_amount)),
            "total_amount": str(round_money(amount)),
            "source": "rentwise",
        }
        obj = await self._call(
            "create_intent",
            None,
            self._client.payment_intents.create,
            params={
                "amount": to_minor_units(amount),
                "currency": currency.lower(),
                "metadata": intent_metadata,
                "automatic_payment_methods": {"enabled": True},
            },
        )
        return self._to_intent(obj)

    async def get_intent(self, tenant_id: UUID | None, reference: str) -> PaymentIntent | None:
        try:
            obj = await self._call(
                "get_intent", reference, self._client.payment_intents.retrieve, reference
            )
        except PaymentGatewayError as e:
            cause = e.__cause__
            if isinstance(cause, stripe.InvalidRequestError) and cause.code == "resource_missing":
                return None
            raise
        intent = self._to_intent(obj)
        return intent if intent.visible_to(tenant_id) else None

    async def capture(self, tenant_id: UUID | None, reference: str) -> bool:
        intent = await self.get_intent(tenant_id, reference)
        if intent is None:
            return False
        if intent.status == PaymentStatus.SUCCEEDED:
            return True
        if intent.status != PaymentStatus.REQUIRES_CAPTURE:
            return False
        obj = await self._call(
            "capture", reference, self._client.payment_intents.capture, reference
        )
        return obj.status == PaymentStatus.SUCCEEDED.value

    async def cancel(self, tenant_id: UUID | None, reference: str) -> bool:
        intent = await self.get_intent(tenant_id, reference)
        if intent is None or not intent.status.is_cancelable:
            return False
        await self._call("cancel", reference, self._client.payment_intents.cancel, reference)
        return True

    async def refund(
        self,
        tenant_id: UUID | None,
        reference: str,
        amount: Decimal | None = None,
        reason: str | None = None,
    ) -> bool:
        _check_refund_reason(reason)
        intent = await self.get_intent(tenant_id, reference)
        if intent is None or intent.status != PaymentStatus.SUCCEEDED:
            return False

        params: dict[str, Any] = {"payment_intent": reference}
        if amount is not None:
            params["amount"] = to_minor_units(amount)
        if reason is not None:
            params["reason"] = reason
        await self._call("refund", reference, self._client.refunds.create, params=params)
        return True


def create_payment_gateway(settings: Settings) -> PaymentGateway:
    """Build the gateway selected by PAYMENT_PROVIDER."""
    if settings.PAYMENT_PROVIDER == PaymentProvider.STRIPE:
        if settings.STRIPE_API_KEY is None:
            raise PaymentGatewayError("STRIPE_API_KEY is not configured", operation="configure")
        return StripePaymentGateway(settings.STRIPE_API_KEY.get_secret_value())
    return MockPaymentGateway(ttl_minutes=settings.MOCK_INTENT_TTL_MINUTES)
