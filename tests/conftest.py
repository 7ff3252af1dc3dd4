"""Pytest fixtures for Rentwise tests."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from uuid import UUID

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rentwise.config.settings import Settings
from rentwise.db.config import create_session_factory
from rentwise.db.models import Base, Customer, Product, Tenant
from rentwise.payments import InMemoryBlobStore, MockPaymentGateway

# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def rental_start() -> datetime:
    """A booking start well in the future, aligned to the hour."""
    return datetime(2030, 6, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def rental_end(rental_start: datetime) -> datetime:
    """Three days after rental_start."""
    return rental_start + timedelta(days=3)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """File-backed SQLite so several sessions see the same data."""
    return f"sqlite+aiosqlite:///{tmp_path / 'rentwise.db'}"


@pytest_asyncio.fixture
async def test_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine with all tables."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Catalog factories
# =============================================================================

TenantFactory = Callable[..., Awaitable[Tenant]]
ProductFactory = Callable[..., Awaitable[Product]]
CustomerFactory = Callable[..., Awaitable[Customer]]


@pytest.fixture
def make_tenant(session_factory: async_sessionmaker[AsyncSession]) -> TenantFactory:
    """Factory committing a tenant in its own session."""

    async def _make(slug: str = "acme", is_active: bool = True) -> Tenant:
        async with session_factory() as session:
            tenant = Tenant(name=slug.title(), slug=slug, is_active=is_active)
            session.add(tenant)
            await session.commit()
            return tenant

    return _make


@pytest.fixture
def make_product(session_factory: async_sessionmaker[AsyncSession]) -> ProductFactory:
    """Factory committing a product owned by a tenant."""

    async def _make(
        tenant_id: UUID,
        daily_price: str = "35.00",
        available_quantity: int = 1,
        hourly_price: str | None = None,
        name: str = "Concrete mixer",
        is_active: bool = True,
    ) -> Product:
        async with session_factory() as session:
            product = Product(
                tenant_id=tenant_id,
                name=name,
                daily_price=Decimal(daily_price),
                hourly_price=Decimal(hourly_price) if hourly_price is not None else None,
                available_quantity=available_quantity,
                is_active=is_active,
            )
            session.add(product)
            await session.commit()
            return product

    return _make


@pytest.fixture
def make_customer(session_factory: async_sessionmaker[AsyncSession]) -> CustomerFactory:
    """Factory committing a customer of a tenant."""

    async def _make(
        tenant_id: UUID,
        email: str | None = "jan.kowalski@example.com",
        full_name: str = "Jan Kowalski",
    ) -> Customer:
        async with session_factory() as session:
            customer = Customer(tenant_id=tenant_id, full_name=full_name, email=email)
            session.add(customer)
            await session.commit()
            return customer

    return _make


@pytest_asyncio.fixture
async def tenant(make_tenant: TenantFactory) -> Tenant:
    return await make_tenant("acme")


@pytest_asyncio.fixture
async def product(make_product: ProductFactory, tenant: Tenant) -> Product:
    """A 35.00/day product with one unit in stock."""
    return await make_product(tenant.tenant_id)


@pytest_asyncio.fixture
async def customer(make_customer: CustomerFactory, tenant: Tenant) -> Customer:
    return await make_customer(tenant.tenant_id)


# =============================================================================
# API test fixtures
# =============================================================================


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    """Create settings for API testing."""
    return Settings(
        API_SECRET_KEY=SecretStr("test-api-secret"),
        DATABASE_URL=database_url,
        ENVIRONMENT="test",
        DEBUG=True,
        log_level="DEBUG",
        GATEWAY_RETRY_BACKOFF_SECONDS=0,
    )


@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway()


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def test_app(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    gateway: MockPaymentGateway,
    blobs: InMemoryBlobStore,
) -> FastAPI:
    """Create a FastAPI test application.

    Uses the test database, the in-memory gateway and blob store.
    """
    from rentwise.api.app import create_app

    return create_app(
        settings=test_settings,
        session_factory=session_factory,
        payment_gateway=gateway,
        blobs=blobs,
    )


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Provides an httpx.AsyncClient configured to call the test application
    directly without network overhead.
    """
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def authenticated_client(
    test_app: FastAPI,
    test_settings: Settings,
    tenant: Tenant,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an authenticated async HTTP client scoped to the tenant fixture.

    Includes the Authorization header with the test API key.
    """
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
        headers={
            "Authorization": f"Bearer {test_settings.API_SECRET_KEY.get_secret_value()}",
            "X-Tenant-ID": str(tenant.tenant_id),
        },
    ) as client:
        yield client
