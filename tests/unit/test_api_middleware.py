"""Unit tests for exception mapping and path rules of the API middleware."""

from decimal import Decimal
from uuid import UUID

import pytest

from rentwise.api.middleware.auth import AuthenticationMiddleware
from rentwise.api.middleware.errors import ErrorHandlingMiddleware
from rentwise.api.middleware.tenant import TenantValidationMiddleware
from rentwise.core.exceptions import (
    AuthenticationError,
    ContextNotSetError,
    DuplicateIdempotencyKeyError,
    IncompletePayloadError,
    InsufficientAvailabilityError,
    InvalidDateRangeError,
    PaymentAmountMismatchError,
    PaymentGatewayError,
    RentalNotFoundError,
    TenantInactiveError,
    TenantNotFoundError,
    TenantRequiredError,
    WebhookSignatureError,
)

PRODUCT_ID = UUID("10000000-0000-7000-8000-000000000001")
TENANT_ID = UUID("00000000-0000-7000-8000-00000000000a")


@pytest.fixture
def middleware() -> ErrorHandlingMiddleware:
    return ErrorHandlingMiddleware(app=None)


class TestExceptionMapping:
    """Tests for ErrorHandlingMiddleware._map_exception."""

    @pytest.mark.parametrize(
        "exc,status_code,error_code",
        [
            (InvalidDateRangeError("b", "a"), 400, "invalid_date_range"),
            (
                PaymentAmountMismatchError("pi_1", Decimal("105.00"), Decimal("100.00")),
                400,
                "payment_amount_mismatch",
            ),
            (InsufficientAvailabilityError(PRODUCT_ID, 2, 1), 409, "insufficient_availability"),
            (DuplicateIdempotencyKeyError("key-1", PRODUCT_ID), 409, "duplicate_idempotency_key"),
            (RentalNotFoundError(PRODUCT_ID), 404, "rental_not_found"),
            (PaymentGatewayError("down", operation="capture"), 502, "payment_gateway_error"),
            (IncompletePayloadError("missing"), 400, "incomplete_payload"),
            (WebhookSignatureError("bad"), 400, "invalid_signature"),
            (TenantRequiredError(), 400, "tenant_required"),
            (TenantNotFoundError(TENANT_ID), 404, "tenant_not_found"),
            (TenantInactiveError(TENANT_ID), 403, "tenant_inactive"),
            (AuthenticationError(), 401, "unauthorized"),
        ],
    )
    def test_domain_exceptions(self, middleware, exc, status_code, error_code):
        status, code, _message, _details = middleware._map_exception(exc)

        assert status == status_code
        assert code == error_code

    def test_details_come_from_exception(self, middleware):
        exc = InsufficientAvailabilityError(PRODUCT_ID, 2, 1)

        _, _, message, details = middleware._map_exception(exc)

        assert details == {"product_id": str(PRODUCT_ID), "requested": 2, "remaining": 1}
        assert "requested 2" in message

    def test_tenant_errors_carry_tenant_id(self, middleware):
        _, _, _, details = middleware._map_exception(TenantInactiveError(TENANT_ID))

        assert details == {"tenant_id": str(TENANT_ID)}

    def test_context_error_is_internal(self, middleware):
        status, code, _, _ = middleware._map_exception(ContextNotSetError())

        assert (status, code) == (500, "internal_error")

    def test_unknown_exception_hides_type_outside_debug(self, middleware):
        status, code, message, details = middleware._map_exception(RuntimeError("boom"))

        assert (status, code) == (500, "internal_error")
        assert "boom" not in message
        assert details is None

    def test_unknown_exception_type_in_debug(self):
        middleware = ErrorHandlingMiddleware(app=None, debug=True)

        _, _, _, details = middleware._map_exception(RuntimeError("boom"))

        assert details == {"type": "RuntimeError"}


class TestPathRules:
    @pytest.mark.parametrize(
        "path,protected",
        [
            ("/v1/rentals", True),
            ("/v1/rentals/0193", True),
            ("/v1/payments/quote", False),
            ("/v1/checkout/create-session", False),
            ("/v1/webhooks/payment-processor", False),
            ("/health", False),
        ],
    )
    def test_authentication_scope(self, path, protected):
        assert AuthenticationMiddleware(app=None)._requires_auth(path) is protected

    def test_actor_id_is_deterministic(self):
        auth = AuthenticationMiddleware(app=None)

        assert auth._get_actor_id_from_token("key") == auth._get_actor_id_from_token("key")

    @pytest.mark.parametrize("path", ["/health", "/metrics", "/docs/oauth2-redirect"])
    def test_tenant_validation_skips_probes(self, path):
        assert TenantValidationMiddleware(app=None)._should_skip_validation(path)

    def test_tenant_validation_applies_to_api(self):
        assert not TenantValidationMiddleware(app=None)._should_skip_validation("/v1/rentals")
