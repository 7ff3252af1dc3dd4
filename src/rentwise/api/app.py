"""FastAPI application factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rentwise.api.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
    TenantValidationMiddleware,
)
from rentwise.api.routers import health_router, v1_router
from rentwise.config.settings import Settings, get_settings
from rentwise.config.validation import validate_or_raise
from rentwise.core.logging import setup_logging
from rentwise.db.config import close_db, get_session_factory, init_db
from rentwise.payments import (
    BlobStore,
    CheckoutPayloadCodec,
    DocumentGenerator,
    LocalFileBlobStore,
    LoggingNotificationSender,
    NotificationSender,
    PaymentGateway,
    PdfContractGenerator,
    WebhookReconciler,
    create_payment_gateway,
    run_hold_sweeper,
)

logger = structlog.get_logger("rentwise.api")


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    payment_gateway: PaymentGateway | None = None,
    notifier: NotificationSender | None = None,
    documents: DocumentGenerator | None = None,
    blobs: BlobStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the application factory that assembles all components:
    - Collaborators on app.state (settings, database, gateway, reconciler)
    - Middleware (in correct order)
    - Routers
    - Lifespan management

    Every argument is an override; omitted ones are built from settings.

    Example:
        # Testing
        app = create_app(
            settings=Settings(ENVIRONMENT="test", DATABASE_URL="sqlite+aiosqlite://"),
            session_factory=factory,
            payment_gateway=MockPaymentGateway(),
        )

        # Run with uvicorn
        uvicorn rentwise.api.app:create_app --factory
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Rentwise API",
        description="Equipment rental booking and payment reconciliation",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    _configure_state(
        app,
        settings,
        session_factory=session_factory or get_session_factory(settings),
        payment_gateway=payment_gateway or create_payment_gateway(settings),
        notifier=notifier or LoggingNotificationSender(),
        documents=documents or PdfContractGenerator(),
        blobs=blobs or LocalFileBlobStore(settings.BLOB_STORAGE_PATH, settings.BLOB_BASE_URL),
    )
    _configure_middleware(app, settings)
    _configure_routers(app)

    return app


def _configure_state(
    app: FastAPI,
    settings: Settings,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    payment_gateway: PaymentGateway,
    notifier: NotificationSender,
    documents: DocumentGenerator,
    blobs: BlobStore,
) -> None:
    codec = CheckoutPayloadCodec()

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.payment_gateway = payment_gateway
    app.state.codec = codec
    app.state.notifier = notifier
    app.state.documents = documents
    app.state.blobs = blobs
    app.state.reconciler = WebhookReconciler(
        session_factory,
        codec,
        notifier,
        documents,
        blobs,
        max_retries=settings.GATEWAY_MAX_RETRIES,
        backoff_seconds=settings.GATEWAY_RETRY_BACKOFF_SECONDS,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup validates configuration and the database connection and starts
    the expired-hold sweeper when configured; shutdown stops it and closes
    the connection pool.
    """
    settings: Settings = app.state.settings
    setup_logging(settings)
    validate_or_raise(settings)

    logger.info("rentwise_starting", environment=settings.ENVIRONMENT)
    await init_db(app.state.session_factory)
    logger.info("database_ready")

    sweeper: asyncio.Task[None] | None = None
    if settings.holds.sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(
            run_hold_sweeper(app.state.session_factory, settings.holds.sweep_interval_seconds)
        )
        logger.info("hold_sweeper_started", interval=settings.holds.sweep_interval_seconds)

    yield

    logger.info("rentwise_stopping")
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    await close_db()


def _configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. RequestLoggingMiddleware - Assigns request id, logs and measures requests
    2. ErrorHandlingMiddleware - Converts exceptions to HTTP responses
    3. CORSMiddleware - Handles CORS (if configured)
    4. AuthenticationMiddleware - Validates Bearer token on back-office paths
    5. TenantValidationMiddleware - Validates X-Tenant-ID when present
    6. RequestContextMiddleware - Sets ContextVar for request context

    Note: Middleware is added in reverse order because Starlette
    processes them from last-added to first-added.
    """
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(TenantValidationMiddleware)
    app.add_middleware(AuthenticationMiddleware)

    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(ErrorHandlingMiddleware, debug=settings.DEBUG)
    app.add_middleware(RequestLoggingMiddleware)


def _configure_routers(app: FastAPI) -> None:
    # Health check and metrics endpoints (no prefix - at root level)
    app.include_router(health_router)
    app.include_router(v1_router)
