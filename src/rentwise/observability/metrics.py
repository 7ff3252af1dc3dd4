"""Prometheus metrics for Rentwise.

This module provides Prometheus metrics for monitoring:
- Processor webhook events (type, outcome)
- Reconciliation outcomes per tenant breakdown
- Rentals created (by source) and holds created
- Outbound payment gateway calls (latency, success)
- HTTP requests
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

__all__ = [
    "MetricsConfig",
    "MetricsManager",
    "WEBHOOK_EVENT_COUNT",
    "RECONCILIATION_OUTCOME_COUNT",
    "RENTAL_CREATED_COUNT",
    "HOLD_CREATED_COUNT",
    "GATEWAY_CALL_DURATION",
    "HTTP_REQUEST_DURATION",
    "get_metrics",
    "get_metrics_manager",
    "record_webhook_event",
    "record_reconciliation_outcome",
    "record_rental_created",
    "record_hold_created",
    "record_gateway_call",
    "record_http_request",
]


@dataclass
class MetricsConfig:
    """Configuration for Prometheus metrics.

    Attributes:
        enabled: Whether metrics collection is enabled.
        prefix: Prefix for all metric names.
    """

    enabled: bool = True
    prefix: str = "rentwise"

    @classmethod
    def from_env(cls) -> MetricsConfig:
        """Create configuration from environment variables."""
        return cls(
            enabled=os.getenv("METRICS_ENABLED", "true").lower() == "true",
            prefix=os.getenv("METRICS_PREFIX", "rentwise"),
        )


# Default configuration
_config = MetricsConfig()

# ============================================================================
# Payment Metrics
# ============================================================================

WEBHOOK_EVENT_COUNT = Counter(
    f"{_config.prefix}_webhook_events_total",
    "Payment processor callbacks received",
    ["event_type", "status"],
)

RECONCILIATION_OUTCOME_COUNT = Counter(
    f"{_config.prefix}_reconciliation_outcomes_total",
    "Outcome of reconciling one tenant breakdown of a checkout",
    ["outcome"],
)

RENTAL_CREATED_COUNT = Counter(
    f"{_config.prefix}_rentals_created_total",
    "Rentals materialized",
    ["source"],
)

HOLD_CREATED_COUNT = Counter(
    f"{_config.prefix}_holds_created_total",
    "Reservation holds created",
    ["tenant_id"],
)

GATEWAY_CALL_DURATION = Histogram(
    f"{_config.prefix}_gateway_call_duration_seconds",
    "Latency of outbound payment gateway calls",
    ["provider", "operation", "success"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ============================================================================
# HTTP Metrics
# ============================================================================

HTTP_REQUEST_DURATION = Histogram(
    f"{_config.prefix}_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status_code"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


class MetricsManager:
    """Handles metrics export, with a custom registry support for testing."""

    def __init__(
        self,
        config: MetricsConfig | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.config = config or MetricsConfig()
        self.registry = registry or REGISTRY

    def get_metrics(self) -> bytes:
        """Generate metrics output in Prometheus format."""
        return generate_latest(self.registry)


_metrics_manager: MetricsManager | None = None


def get_metrics_manager() -> MetricsManager:
    """Get the global metrics manager instance."""
    global _metrics_manager
    if _metrics_manager is None:
        _metrics_manager = MetricsManager(MetricsConfig.from_env())
    return _metrics_manager


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format."""
    return get_metrics_manager().get_metrics()


# ============================================================================
# Convenience Functions for Recording Metrics
# ============================================================================


def _enabled() -> bool:
    return get_metrics_manager().config.enabled


def record_webhook_event(event_type: str, status: str) -> None:
    if _enabled():
        WEBHOOK_EVENT_COUNT.labels(event_type=event_type, status=status).inc()


def record_reconciliation_outcome(outcome: str) -> None:
    if _enabled():
        RECONCILIATION_OUTCOME_COUNT.labels(outcome=outcome).inc()


def record_rental_created(source: str) -> None:
    if _enabled():
        RENTAL_CREATED_COUNT.labels(source=source).inc()


def record_hold_created(tenant_id: str) -> None:
    if _enabled():
        HOLD_CREATED_COUNT.labels(tenant_id=tenant_id).inc()


def record_gateway_call(
    provider: str, operation: str, duration_seconds: float, success: bool
) -> None:
    """Record an outbound payment gateway call.

    Args:
        provider: Gateway name (mock, stripe).
        operation: Gateway operation (create_intent, capture, ...).
        duration_seconds: Call latency.
        success: Whether the call succeeded.
    """
    if _enabled():
        GATEWAY_CALL_DURATION.labels(
            provider=provider, operation=operation, success=str(success).lower()
        ).observe(duration_seconds)


def record_http_request(
    method: str, endpoint: str, status_code: int, duration_seconds: float
) -> None:
    if _enabled():
        HTTP_REQUEST_DURATION.labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).observe(duration_seconds)
