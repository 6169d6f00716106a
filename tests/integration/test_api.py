"""
Integration Tests - HTTP API
"""
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import create_app


@pytest.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(use_lifespan=False)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def store(client):
    """Partners, two products, SMSA shipping and a flat 5 gateway created over HTTP"""
    yassir = (await client.post("/api/v1/partners", json={"name": "yassir"})).json()
    basim = (await client.post("/api/v1/partners", json={"name": "basim"})).json()

    light = (await client.post("/api/v1/products", json={
        "name": "Lines RGB Light", "sku": "SKU-1", "cost": 40, "selling_price": 100, "owner": "yassir",
    })).json()
    pad = (await client.post("/api/v1/products", json={
        "name": "Mousepad", "sku": "SKU-2", "cost": 20, "selling_price": 50, "owner": "basim",
    })).json()

    smsa = (await client.post("/api/v1/catalog/shipping-methods", json={"name": "SMSA", "cost": 15})).json()
    flat = (await client.post("/api/v1/catalog/payment-methods", json={"name": "Flat", "fee_fixed": 5})).json()

    return SimpleNamespace(yassir=yassir, basim=basim, light=light, pad=pad, smsa=smsa, flat=flat)


def _order_payload(store, **overrides) -> dict:
    payload = {
        "items": [
            {"product_id": store.light["id"], "quantity": 1},
            {"product_id": store.pad["id"], "quantity": 1},
        ],
        "shipping_method_id": store.smsa["id"],
        "payment_method_id": store.flat["id"],
    }
    payload.update(overrides)
    return payload


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["checks"]["database"]["status"] == "healthy"

    async def test_info(self, client):
        response = await client.get("/api/v1/info")

        assert response.json()["currency"] == "SAR"

    async def test_request_id_and_no_store(self, client):
        response = await client.get("/api/v1/partners", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestProductsApi:
    async def test_duplicate_sku(self, client, store):
        response = await client.post("/api/v1/products", json={
            "name": "Copy", "sku": "SKU-1", "cost": 1, "selling_price": 2, "owner": "basim",
        })

        assert response.status_code == 409

    async def test_update_price(self, client, store):
        response = await client.patch(f"/api/v1/products/{store.light['id']}", json={"selling_price": 120})

        assert response.status_code == 200
        assert response.json()["selling_price"] == 120.0

    async def test_missing_product(self, client):
        assert (await client.get("/api/v1/products/nope")).status_code == 404


class TestSharesApi:
    """Tests for share configuration over HTTP"""

    async def test_save_and_read(self, client, store):
        response = await client.put(f"/api/v1/partners/shares/{store.light['id']}", json={
            "shares": [
                {"partner_id": store.yassir["id"], "percentage": 60},
                {"partner_id": store.basim["id"], "percentage": 40},
            ],
        })

        assert response.status_code == 200
        body = (await client.get(f"/api/v1/partners/shares/{store.light['id']}")).json()
        assert body["is_configured"]
        assert body["total_percentage"] == 100.0

    async def test_sum_must_be_100(self, client, store):
        response = await client.put(f"/api/v1/partners/shares/{store.light['id']}", json={
            "shares": [
                {"partner_id": store.yassir["id"], "percentage": 70},
                {"partner_id": store.basim["id"], "percentage": 20},
            ],
        })

        assert response.status_code == 422
        body = (await client.get(f"/api/v1/partners/shares/{store.light['id']}")).json()
        assert not body["is_configured"]

    async def test_unknown_product(self, client, store):
        response = await client.put("/api/v1/partners/shares/nope", json={
            "shares": [{"partner_id": store.yassir["id"], "percentage": 100}],
        })

        assert response.status_code == 404


class TestOrdersApi:
    """Tests for checkout and the profit breakdown"""

    async def test_quote_does_not_save(self, client, store):
        response = await client.post("/api/v1/orders/quote", json=_order_payload(store))

        assert response.status_code == 200
        assert response.json()["customer_total"] == 165.0
        assert (await client.get("/api/v1/orders")).json() == []

    async def test_create_and_breakdown(self, client, store):
        created = await client.post("/api/v1/orders", json=_order_payload(store, customer_name="Noura"))
        assert created.status_code == 201
        order = created.json()
        assert order["total"] == 165.0
        assert order["net_profit"] == pytest.approx(85.0)

        profit = (await client.get(f"/api/v1/orders/{order['id']}/profit")).json()

        assert profit["reconciles"]
        assert [round(i["expense_share"], 2) for i in profit["items"]] == [13.33, 6.67]
        assert [i["revenue"] for i in profit["items"]] == pytest.approx([110.0, 55.0])
        # no shares configured yet: everything to the default partner
        assert profit["partner_shares"] == pytest.approx({"basim": 85.0, "yassir": 0.0})

    async def test_share_change_visible_immediately(self, client, store):
        order = (await client.post("/api/v1/orders", json=_order_payload(store))).json()
        await client.get(f"/api/v1/orders/{order['id']}/profit")

        await client.put(f"/api/v1/partners/shares/{store.light['id']}", json={
            "shares": [
                {"partner_id": store.yassir["id"], "percentage": 60},
                {"partner_id": store.basim["id"], "percentage": 40},
            ],
        })
        profit = (await client.get(f"/api/v1/orders/{order['id']}/profit")).json()

        light_net = 110 - 40 - 40 / 3
        assert profit["partner_shares"]["yassir"] == pytest.approx(0.6 * light_net)
        assert profit["partner_shares"]["basim"] == pytest.approx(85.0 - 0.6 * light_net)

    async def test_free_shipping_order(self, client, store):
        payload = _order_payload(store, items=[{"product_id": store.light["id"], "quantity": 2}])

        order = (await client.post("/api/v1/orders", json=payload)).json()

        assert order["is_free_shipping"]
        assert order["total"] == 200.0
        assert order["shipping_cost"] == 15.0
        assert order["net_profit"] == pytest.approx(200 - 80 - 15 - 5)

    async def test_invalid_quantity(self, client, store):
        payload = _order_payload(store, items=[{"product_id": store.light["id"], "quantity": 0}])

        assert (await client.post("/api/v1/orders", json=payload)).status_code == 422

    @pytest.mark.parametrize("discount", [
        {"kind": "percentage", "value": 250},
        {"kind": "fixed", "value": 1000},
    ])
    async def test_discount_out_of_range(self, client, store, discount):
        payload = _order_payload(store, discount=discount)

        assert (await client.post("/api/v1/orders/quote", json=payload)).status_code == 422
        assert (await client.post("/api/v1/orders", json=payload)).status_code == 422
        assert (await client.get("/api/v1/orders")).json() == []

    async def test_unknown_product(self, client, store):
        payload = _order_payload(store, items=[{"product_id": "nope", "quantity": 1}])

        assert (await client.post("/api/v1/orders", json=payload)).status_code == 404

    async def test_delete(self, client, store):
        order = (await client.post("/api/v1/orders", json=_order_payload(store))).json()

        assert (await client.delete(f"/api/v1/orders/{order['id']}")).status_code == 204
        assert (await client.get(f"/api/v1/orders/{order['id']}")).status_code == 404


class TestBulkOrdersApi:
    """Tests for bulk recalculation and deletion over HTTP"""

    async def test_recalculate_all(self, client, store):
        order = (await client.post("/api/v1/orders", json=_order_payload(store))).json()
        await client.patch(f"/api/v1/products/{store.light['id']}", json={"selling_price": 120})

        body = (await client.post("/api/v1/orders/recalculate", json={})).json()

        assert body["updated"] == 1
        assert body["updated_ids"] == [order["id"]]
        assert (await client.get(f"/api/v1/orders/{order['id']}")).json()["subtotal"] == 170.0

    async def test_recalculate_listed_reports_missing(self, client, store):
        order = (await client.post("/api/v1/orders", json=_order_payload(store))).json()

        body = (await client.post("/api/v1/orders/recalculate", json={"order_ids": [order["id"], "nope"]})).json()

        assert body["updated"] == 1
        assert body["missing"] == ["nope"]

    async def test_bulk_delete(self, client, store):
        ids = [(await client.post("/api/v1/orders", json=_order_payload(store))).json()["id"] for _ in range(2)]

        response = await client.post("/api/v1/orders/bulk-delete", json={"order_ids": ids})

        assert response.json() == {"deleted": 2}
        assert (await client.get("/api/v1/orders")).json() == []

    async def test_bulk_delete_needs_ids(self, client):
        assert (await client.post("/api/v1/orders/bulk-delete", json={"order_ids": []})).status_code == 422


class TestQuickDiscountsApi:
    """Tests for preset discount management"""

    async def test_create_list_reorder_delete(self, client):
        ten = (await client.post("/api/v1/catalog/quick-discounts", json={
            "name": "10%", "kind": "percentage", "value": 10, "display_order": 1,
        })).json()
        twenty = (await client.post("/api/v1/catalog/quick-discounts", json={
            "name": "20 SAR", "kind": "fixed", "value": 20, "display_order": 2,
        })).json()

        reordered = (await client.put("/api/v1/catalog/quick-discounts/order", json=[
            {"id": ten["id"], "display_order": 2},
            {"id": twenty["id"], "display_order": 1},
        ])).json()
        assert [d["name"] for d in reordered] == ["20 SAR", "10%"]

        patched = await client.patch(f"/api/v1/catalog/quick-discounts/{ten['id']}", json={"is_active": False})
        assert patched.json()["is_active"] is False
        active = (await client.get("/api/v1/catalog/quick-discounts", params={"active_only": True})).json()
        assert [d["name"] for d in active] == ["20 SAR"]

        assert (await client.delete(f"/api/v1/catalog/quick-discounts/{ten['id']}")).status_code == 204
        assert (await client.delete(f"/api/v1/catalog/quick-discounts/{ten['id']}")).status_code == 404

    async def test_invalid_percentage(self, client):
        response = await client.post("/api/v1/catalog/quick-discounts", json={
            "name": "Too much", "kind": "percentage", "value": 120,
        })

        assert response.status_code == 422


class TestSettingsApi:
    """Tests for the runtime free-shipping threshold"""

    async def test_threshold_round_trip_changes_checkout(self, client, store):
        assert (await client.get("/api/v1/settings/free-shipping-threshold")).json() == {"value": 200.0}
        payload = _order_payload(store, items=[{"product_id": store.light["id"], "quantity": 1}])
        assert not (await client.post("/api/v1/orders/quote", json=payload)).json()["is_free_shipping"]

        response = await client.put("/api/v1/settings/free-shipping-threshold", json={"value": 100})

        assert response.json() == {"value": 100.0}
        assert (await client.get("/api/v1/settings/free-shipping-threshold")).json() == {"value": 100.0}
        assert (await client.post("/api/v1/orders/quote", json=payload)).json()["is_free_shipping"]
        settings_rows = (await client.get("/api/v1/settings", params={"category": "shipping"})).json()
        assert settings_rows[0]["key"] == "free_shipping_threshold"

    async def test_negative_threshold(self, client):
        response = await client.put("/api/v1/settings/free-shipping-threshold", json={"value": -5})

        assert response.status_code == 422

    async def test_unknown_key(self, client):
        response = await client.put("/api/v1/settings/nope", json={"value": 1})

        assert response.status_code == 404


class TestReportsApi:
    """Tests for report endpoints"""

    async def test_metrics(self, client, store):
        await client.post("/api/v1/orders", json=_order_payload(store))
        await client.post("/api/v1/expenses", json={
            "description": "Snapchat ads",
            "expense_date": "2025-01-10",
            "category": "marketing",
            "include_tax": True,
            "amount_before_tax": 100,
            "partner_shares": {"yassir": 50, "basim": 50},
        })

        metrics = (await client.get("/api/v1/reports/metrics")).json()

        assert metrics["currency"] == "SAR"
        assert metrics["total_orders"] == 1
        assert metrics["total_revenue"] == 165.0
        assert metrics["marketing_expenses"] == pytest.approx(115.0)
        assert metrics["expenses"]["expenses"] == pytest.approx({"basim": 57.5, "yassir": 57.5})
        assert metrics["profit_shares"]["total_profit"] == pytest.approx(85.0)
        assert metrics["shipping_fee_data"]["by_company"][0]["name"] == "SMSA"

    async def test_product_sales(self, client, store):
        await client.post("/api/v1/orders", json=_order_payload(store))

        rows = (await client.get("/api/v1/reports/products")).json()

        assert [row["product_name"] for row in rows] == ["Lines RGB Light", "Mousepad"]
        assert rows[0]["units_sold"] == 1

    async def test_empty_metrics(self, client):
        metrics = (await client.get("/api/v1/reports/metrics")).json()

        assert metrics["total_orders"] == 0
        assert metrics["net_profit_margin"] == 0.0
