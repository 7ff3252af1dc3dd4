"""Integration tests for availability and hold endpoints."""

from datetime import timedelta
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from rentwise.db.models import ReservationHold

UNKNOWN_PRODUCT = UUID("10000000-0000-7000-8000-0000000000ff")


def _window(start, end) -> dict[str, str]:
    return {"start": start.isoformat(), "end": end.isoformat()}


def _hold(product_id, start, end, **extra) -> dict:
    return {"product_id": str(product_id), "quantity": 1, **_window(start, end), **extra}


@pytest.mark.asyncio
class TestAvailabilityEndpoint:
    """Tests for GET /v1/products/{id}/availability."""

    async def test_free_product(self, test_client: AsyncClient, product, rental_start, rental_end):
        response = await test_client.get(
            f"/v1/products/{product.product_id}/availability",
            params=_window(rental_start, rental_end),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["product_id"] == str(product.product_id)
        assert data["capacity"] == 1
        assert data["committed"] == 0
        assert data["held"] == 0
        assert data["remaining"] == 1
        assert data["requested"] == 1
        assert data["available"] is True

    async def test_quantity_above_capacity(
        self, test_client: AsyncClient, product, rental_start, rental_end
    ):
        response = await test_client.get(
            f"/v1/products/{product.product_id}/availability",
            params={**_window(rental_start, rental_end), "quantity": 2},
        )

        assert response.status_code == 200
        assert response.json()["available"] is False

    async def test_holds_are_reported_but_do_not_block(
        self, test_client: AsyncClient, product, rental_start, rental_end
    ):
        created = await test_client.post(
            "/v1/holds",
            json=_hold(product.product_id, rental_start, rental_end),
        )
        assert created.status_code == 201

        response = await test_client.get(
            f"/v1/products/{product.product_id}/availability",
            params=_window(rental_start, rental_end),
        )

        data = response.json()
        assert data["held"] == 1
        assert data["remaining"] == 1
        assert data["available"] is True

    async def test_unknown_product(self, test_client: AsyncClient, rental_start, rental_end):
        response = await test_client.get(
            f"/v1/products/{UNKNOWN_PRODUCT}/availability",
            params=_window(rental_start, rental_end),
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "product_not_found"

    async def test_invalid_range(self, test_client: AsyncClient, product, rental_start):
        response = await test_client.get(
            f"/v1/products/{product.product_id}/availability",
            params=_window(rental_start, rental_start),
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_date_range"

    async def test_invalid_quantity(
        self, test_client: AsyncClient, product, rental_start, rental_end
    ):
        response = await test_client.get(
            f"/v1/products/{product.product_id}/availability",
            params={**_window(rental_start, rental_end), "quantity": 0},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_quantity"


@pytest.mark.asyncio
class TestHoldEndpoints:
    """Tests for POST and DELETE /v1/holds."""

    async def test_create_hold(
        self, test_client: AsyncClient, session_factory, product, rental_start, rental_end
    ):
        response = await test_client.post(
            "/v1/holds",
            json={
                "product_id": str(product.product_id),
                "quantity": 1,
                "ttl_minutes": 10,
                "session_id": "sess-42",
                **_window(rental_start, rental_end),
            },
        )

        assert response.status_code == 201
        data = response.json()
        hold_id = UUID(data["id"])

        async with session_factory() as session:
            hold = await session.get(ReservationHold, hold_id)
        assert hold is not None
        assert hold.tenant_id == product.tenant_id
        assert hold.session_id == "sess-42"
        assert hold.expires_at - hold.created_at == timedelta(minutes=10)

    async def test_default_ttl(self, test_client: AsyncClient, product, rental_start, rental_end):
        response = await test_client.post(
            "/v1/holds",
            json=_hold(product.product_id, rental_start, rental_end),
        )

        assert response.status_code == 201

    async def test_ttl_above_maximum(
        self, test_client: AsyncClient, product, rental_start, rental_end
    ):
        response = await test_client.post(
            "/v1/holds",
            json={
                "product_id": str(product.product_id),
                "quantity": 1,
                "ttl_minutes": 121,
                **_window(rental_start, rental_end),
            },
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "invalid_hold"
        assert data["details"] == {"field": "ttl_minutes"}

    async def test_hold_for_unknown_product(
        self, test_client: AsyncClient, rental_start, rental_end
    ):
        response = await test_client.post(
            "/v1/holds",
            json=_hold(UNKNOWN_PRODUCT, rental_start, rental_end),
        )

        assert response.status_code == 404

    async def test_delete_hold(
        self, test_client: AsyncClient, session_factory, product, rental_start, rental_end
    ):
        created = await test_client.post(
            "/v1/holds",
            json=_hold(product.product_id, rental_start, rental_end),
        )
        hold_id = created.json()["id"]

        response = await test_client.delete(f"/v1/holds/{hold_id}")

        assert response.status_code == 204
        async with session_factory() as session:
            remaining = (await session.execute(select(ReservationHold))).scalars().all()
        assert remaining == []

    async def test_delete_unknown_hold(self, test_client: AsyncClient):
        response = await test_client.delete(f"/v1/holds/{UNKNOWN_PRODUCT}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "hold_not_found"
