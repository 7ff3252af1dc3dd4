"""Configuration validation for startup checks.

Validates that required configuration is present and valid before the
application starts accepting requests.

Usage:
    from rentwise.config.validation import validate_or_raise

    # During startup
    validate_or_raise(settings)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from rentwise.config.settings import PaymentProvider, Settings, get_settings
from rentwise.utils.exceptions import ConfigurationError

logger = structlog.get_logger()


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, app cannot start
    WARNING = "warning"  # Should be fixed, app can start but may have issues


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Validate application configuration.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []
    results.extend(_validate_database(settings))
    results.extend(_validate_payments(settings))
    results.extend(_validate_holds(settings))
    results.extend(_validate_environment(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors found.

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in (r for r in results if r.severity == ValidationSeverity.WARNING):
        logger.warning("configuration_warning", field=warning.field, message=warning.message)


# =============================================================================
# Validators
# =============================================================================


def _validate_database(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []

    if not settings.DATABASE_URL:
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.ERROR,
                message="Database URL is not configured",
                suggestion="Set DATABASE_URL environment variable",
            )
        )
    elif not settings.DATABASE_URL.startswith(("postgresql", "sqlite")):
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.WARNING,
                message=f"Unexpected database type in URL: {settings.DATABASE_URL[:20]}...",
                suggestion="Rentwise is designed for PostgreSQL or SQLite",
            )
        )

    return results


def _validate_payments(settings: Settings) -> list[ValidationResult]:
    """Validate payment processor configuration."""
    results: list[ValidationResult] = []

    if settings.PAYMENT_PROVIDER == PaymentProvider.STRIPE and settings.STRIPE_API_KEY is None:
        results.append(
            ValidationResult(
                field="STRIPE_API_KEY",
                severity=ValidationSeverity.ERROR,
                message="Stripe provider selected but no API key configured",
                suggestion="Set STRIPE_API_KEY or use PAYMENT_PROVIDER=mock",
            )
        )

    if settings.ENVIRONMENT == "production":
        if settings.PAYMENT_PROVIDER == PaymentProvider.MOCK:
            results.append(
                ValidationResult(
                    field="PAYMENT_PROVIDER",
                    severity=ValidationSeverity.ERROR,
                    message="The mock payment gateway cannot be used in production",
                )
            )
        if settings.webhook_secret is None:
            results.append(
                ValidationResult(
                    field="PAYMENT_WEBHOOK_SECRET",
                    severity=ValidationSeverity.ERROR,
                    message="Webhook signatures must be verified in production",
                    suggestion="Set PAYMENT_WEBHOOK_SECRET to the processor signing secret",
                )
            )
    elif settings.webhook_secret is None:
        results.append(
            ValidationResult(
                field="PAYMENT_WEBHOOK_SECRET",
                severity=ValidationSeverity.WARNING,
                message="Webhook events will be accepted without signature verification",
            )
        )

    return results


def _validate_holds(settings: Settings) -> list[ValidationResult]:
    results: list[ValidationResult] = []
    policy = settings.holds

    if policy.default_ttl_minutes <= 0 or policy.default_ttl_minutes > policy.max_ttl_minutes:
        results.append(
            ValidationResult(
                field="holds.default_ttl_minutes",
                severity=ValidationSeverity.ERROR,
                message=(
                    f"Default hold TTL {policy.default_ttl_minutes} must be positive "
                    f"and at most {policy.max_ttl_minutes}"
                ),
            )
        )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    """Validate environment-specific settings."""
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        results.append(
            ValidationResult(
                field="DEBUG",
                severity=ValidationSeverity.ERROR,
                message="Debug mode must be disabled in production",
                suggestion="Set DEBUG=false for production",
            )
        )

    if settings.ENVIRONMENT == "production" and settings.API_SECRET_KEY is None:
        results.append(
            ValidationResult(
                field="API_SECRET_KEY",
                severity=ValidationSeverity.ERROR,
                message="API secret key is required in production",
            )
        )

    return results


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Get a summary of current configuration (safe for logging).

    Excludes secrets and connection strings.
    """
    if settings is None:
        settings = get_settings()

    return {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "log_level": settings.log_level,
        "payment_provider": settings.PAYMENT_PROVIDER.value,
        "currency": settings.DEFAULT_CURRENCY,
        "webhook_signature_required": settings.webhook_secret is not None,
        "api_key_configured": settings.API_SECRET_KEY is not None,
        "hold_default_ttl_minutes": settings.holds.default_ttl_minutes,
    }
