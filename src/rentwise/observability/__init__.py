"""Observability for Rentwise: Prometheus metrics."""

from .metrics import (
    MetricsConfig,
    MetricsManager,
    get_metrics,
    get_metrics_manager,
    record_gateway_call,
    record_hold_created,
    record_http_request,
    record_reconciliation_outcome,
    record_rental_created,
    record_webhook_event,
)

__all__ = [
    "MetricsConfig",
    "MetricsManager",
    "get_metrics",
    "get_metrics_manager",
    "record_gateway_call",
    "record_hold_created",
    "record_http_request",
    "record_reconciliation_outcome",
    "record_rental_created",
    "record_webhook_event",
]
