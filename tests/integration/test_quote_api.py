"""Integration tests for the quote endpoint."""

from datetime import timedelta
from uuid import UUID

import pytest
from httpx import AsyncClient


def _body(start, end, *items, **extra) -> dict:
    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "items": [{"product_id": str(pid), "quantity": qty} for pid, qty in items],
        **extra,
    }


@pytest.mark.asyncio
class TestQuoteEndpoint:
    """Tests for POST /v1/payments/quote."""

    async def test_three_day_quote(
        self, test_client: AsyncClient, product, rental_start, rental_end
    ):
        response = await test_client.post(
            "/v1/payments/quote", json=_body(rental_start, rental_end, (product.product_id, 1))
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == "105.00"
        assert data["deposit"] == "31.50"
        assert data["currency"] == "pln"
        assert data["billable_periods"] == 3
        assert len(data["tenants"]) == 1
        assert data["tenants"][0]["tenant_id"] == str(product.tenant_id)
        line = data["tenants"][0]["lines"][0]
        assert line["unit_price"] == "35.00"
        assert line["billing_unit"] == "day"
        assert line["periods"] == 3

    async def test_naive_datetimes_are_utc(self, test_client: AsyncClient, product, rental_start):
        body = {
            "start": "2030-06-01T09:00:00",
            "end": "2030-06-02T09:00:00",
            "items": [{"product_id": str(product.product_id), "quantity": 1}],
        }

        response = await test_client.post("/v1/payments/quote", json=body)

        assert response.status_code == 200
        assert response.json()["total"] == "35.00"

    async def test_multi_tenant_quote(
        self, test_client: AsyncClient, make_tenant, make_product, product, rental_start
    ):
        other = await make_tenant("liftco")
        lift = await make_product(other.tenant_id, daily_price="100.00", name="Scissor lift")
        end = rental_start + timedelta(days=1)

        response = await test_client.post(
            "/v1/payments/quote",
            json=_body(rental_start, end, (product.product_id, 1), (lift.product_id, 1)),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == "135.00"
        assert data["deposit"] == "40.50"
        tenant_ids = [t["tenant_id"] for t in data["tenants"]]
        assert tenant_ids == sorted(tenant_ids)
        deposits = {t["tenant_id"]: t["deposit"] for t in data["tenants"]}
        assert deposits[str(product.tenant_id)] == "10.50"
        assert deposits[str(other.tenant_id)] == "30.00"

    async def test_hourly_quote(self, test_client: AsyncClient, make_product, tenant, rental_start):
        drill = await make_product(
            tenant.tenant_id, daily_price="20.00", hourly_price="4.50", name="Drill"
        )
        end = rental_start + timedelta(hours=5)

        response = await test_client.post(
            "/v1/payments/quote",
            json=_body(rental_start, end, (drill.product_id, 1), rental_type="hourly", hours=5),
        )

        assert response.status_code == 200
        assert response.json()["total"] == "22.50"
        assert response.json()["billable_periods"] == 5

    async def test_unknown_product(
        self, test_client: AsyncClient, tenant, rental_start, rental_end
    ):
        unknown = UUID("10000000-0000-7000-8000-0000000000ff")

        response = await test_client.post(
            "/v1/payments/quote", json=_body(rental_start, rental_end, (unknown, 1))
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "products_unavailable"
        assert data["details"]["product_ids"] == [str(unknown)]

    async def test_inactive_product_is_unavailable(
        self, test_client: AsyncClient, make_product, tenant, rental_start, rental_end
    ):
        retired = await make_product(tenant.tenant_id, is_active=False)

        response = await test_client.post(
            "/v1/payments/quote", json=_body(rental_start, rental_end, (retired.product_id, 1))
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "products_unavailable"

    async def test_end_before_start(
        self, test_client: AsyncClient, product, rental_start, rental_end
    ):
        response = await test_client.post(
            "/v1/payments/quote", json=_body(rental_end, rental_start, (product.product_id, 1))
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_date_range"

    async def test_empty_cart(self, test_client: AsyncClient, rental_start, rental_end):
        response = await test_client.post(
            "/v1/payments/quote", json=_body(rental_start, rental_end)
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "empty_line_set"

    async def test_zero_quantity(self, test_client: AsyncClient, product, rental_start, rental_end):
        response = await test_client.post(
            "/v1/payments/quote", json=_body(rental_start, rental_end, (product.product_id, 0))
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_quantity"

    async def test_malformed_body(self, test_client: AsyncClient):
        response = await test_client.post("/v1/payments/quote", json={"items": []})

        assert response.status_code == 422
