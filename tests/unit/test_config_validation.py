"""Tests for configuration validation."""

import pytest
from pydantic import SecretStr

from rentwise.config.settings import HoldPolicy, PaymentProvider, Settings
from rentwise.config.validation import (
    ValidationResult,
    ValidationSeverity,
    get_configuration_summary,
    validate_configuration,
    validate_or_raise,
)
from rentwise.utils.exceptions import ConfigurationError


def _settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "development",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "PAYMENT_WEBHOOK_SECRET": SecretStr("whsec_dev"),
    }
    values.update(overrides)
    return Settings(**values)


def _fields(results: list[ValidationResult], severity: ValidationSeverity) -> set[str]:
    return {r.field for r in results if r.severity == severity}


class TestValidationResult:
    def test_str_with_suggestion(self):
        result = ValidationResult(
            field="DEBUG",
            severity=ValidationSeverity.ERROR,
            message="Debug mode must be disabled",
            suggestion="Set DEBUG=false",
        )

        assert str(result) == (
            "[ERROR] DEBUG: Debug mode must be disabled\n  Suggestion: Set DEBUG=false"
        )

    def test_str_warning(self):
        result = ValidationResult(
            field="X", severity=ValidationSeverity.WARNING, message="careful"
        )

        assert str(result) == "[WARNING] X: careful"


class TestValidateConfiguration:
    """Tests for validate_configuration."""

    def test_development_defaults_pass(self):
        assert validate_configuration(_settings()) == []

    def test_missing_webhook_secret_warns_outside_production(self):
        results = validate_configuration(_settings(PAYMENT_WEBHOOK_SECRET=None))

        assert _fields(results, ValidationSeverity.WARNING) == {"PAYMENT_WEBHOOK_SECRET"}

    def test_unexpected_database_warns(self):
        results = validate_configuration(_settings(DATABASE_URL="mysql://localhost/db"))

        assert "DATABASE_URL" in _fields(results, ValidationSeverity.WARNING)

    def test_stripe_without_key_is_error(self):
        results = validate_configuration(_settings(PAYMENT_PROVIDER=PaymentProvider.STRIPE))

        assert "STRIPE_API_KEY" in _fields(results, ValidationSeverity.ERROR)

    def test_production_requirements(self):
        results = validate_configuration(
            _settings(ENVIRONMENT="production", DEBUG=True, PAYMENT_WEBHOOK_SECRET=None)
        )

        assert _fields(results, ValidationSeverity.ERROR) == {
            "PAYMENT_PROVIDER",
            "PAYMENT_WEBHOOK_SECRET",
            "DEBUG",
            "API_SECRET_KEY",
        }

    def test_production_with_stripe_passes(self):
        settings = _settings(
            ENVIRONMENT="production",
            PAYMENT_PROVIDER=PaymentProvider.STRIPE,
            STRIPE_API_KEY=SecretStr("sk_live_x"),
            API_SECRET_KEY=SecretStr("secret"),
        )

        assert validate_configuration(settings) == []

    def test_default_ttl_above_max(self):
        settings = _settings(holds=HoldPolicy(default_ttl_minutes=200, max_ttl_minutes=120))

        results = validate_configuration(settings)

        assert "holds.default_ttl_minutes" in _fields(results, ValidationSeverity.ERROR)


class TestValidateOrRaise:
    def test_raises_on_errors(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_or_raise(_settings(PAYMENT_PROVIDER=PaymentProvider.STRIPE))

        assert "STRIPE_API_KEY" in str(exc_info.value)

    def test_warnings_do_not_raise(self):
        validate_or_raise(_settings(PAYMENT_WEBHOOK_SECRET=None))


def test_summary_excludes_secrets():
    summary = get_configuration_summary(_settings(API_SECRET_KEY=SecretStr("top-secret")))

    assert summary["api_key_configured"] is True
    assert summary["webhook_signature_required"] is True
    assert "top-secret" not in str(summary)
