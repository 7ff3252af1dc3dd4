"""Health check and metrics endpoints."""

import time
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from rentwise.api.schemas.health import (
    ComponentHealth,
    HealthDetailResponse,
    HealthResponse,
    HealthStatus,
)
from rentwise.db.config import get_db
from rentwise.observability.metrics import get_metrics

router = APIRouter(tags=["health"])

APP_VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Returns basic liveness status. No authentication required.",
)
async def health_check() -> HealthResponse:
    """Basic liveness check endpoint.

    Returns 200 if the application is running, regardless of
    dependency health. Use /health/ready for full readiness check.
    """
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/health/db",
    response_model=HealthDetailResponse,
    summary="Database health check",
    description="Checks database connectivity. No authentication required.",
)
async def health_db(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthDetailResponse:
    """Database connectivity check with latency."""
    db_health = await _check_database(db)

    return HealthDetailResponse(
        status=db_health.status,
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
        database=db_health,
    )


@router.get(
    "/health/ready",
    response_model=HealthDetailResponse,
    summary="Full readiness check",
    description="Checks all dependencies for readiness. No authentication required.",
)
async def health_ready(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthDetailResponse:
    """Full readiness check endpoint.

    Verifies the database answers and the payment gateway is usable.
    Use this for Kubernetes readiness probes.
    """
    db_health = await _check_database(db)
    gateway_health = _check_payment_gateway(request)

    return HealthDetailResponse(
        status=_aggregate_health([db_health, gateway_health]),
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
        database=db_health,
        payment_gateway=gateway_health,
        details={"checks_performed": ["database", "payment_gateway"]},
    )


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus exposition of the process metrics."""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


async def _check_database(db: AsyncSession) -> ComponentHealth:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Database connection successful",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database connection failed: {str(e)[:100]}",
            latency_ms=round(latency_ms, 2),
        )


def _check_payment_gateway(request: Request) -> ComponentHealth:
    """The mock gateway outside development counts as degraded."""
    settings = request.app.state.settings
    gateway = request.app.state.payment_gateway
    message = f"Provider: {gateway.provider}"

    if gateway.provider == "mock" and settings.ENVIRONMENT == "production":
        return ComponentHealth(status=HealthStatus.DEGRADED, message=message)
    return ComponentHealth(status=HealthStatus.HEALTHY, message=message)


def _aggregate_health(components: list[ComponentHealth | None]) -> HealthStatus:
    """Aggregate component health into overall status.

    Returns:
        - UNHEALTHY if any component is unhealthy
        - DEGRADED if any component is degraded
        - HEALTHY otherwise
    """
    statuses = [c.status for c in components if c is not None]

    if any(s == HealthStatus.UNHEALTHY for s in statuses):
        return HealthStatus.UNHEALTHY

    if any(s == HealthStatus.DEGRADED for s in statuses):
        return HealthStatus.DEGRADED

    return HealthStatus.HEALTHY
