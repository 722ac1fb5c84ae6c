"""
API tests for /api/v1/orders, /api/v1/backup and /health
"""
import json

import pytest


@pytest.fixture
def product_id(client, sample_product_data):
    return client.post("/api/v1/products/", json=sample_product_data).json()["data"]["id"]


class TestOrdersAPI:

    def test_checkout_returns_order_and_receipt(self, client, product_id):
        response = client.post("/api/v1/orders/checkout", json={"items": [{"productId": product_id, "quantity": 2}]})

        assert response.status_code == 201
        body = response.json()
        assert body["data"]["orderNumber"] == "HD0001"
        assert body["data"]["total"] == 240000
        assert body["data"]["itemCount"] == 2
        assert "240.000 đ" in body["receipt"]

    def test_empty_cart_is_400(self, client):
        response = client.post("/api/v1/orders/checkout", json={"items": []})

        assert response.status_code == 400
        assert response.json()["code"] == "empty_cart"

    def test_unknown_product_is_400(self, client):
        response = client.post("/api/v1/orders/checkout", json={"items": [{"productId": "ghost", "quantity": 1}]})

        assert response.status_code == 400
        assert response.json()["code"] == "unknown_product"

    def test_next_number_and_today_stats(self, client, product_id):
        assert client.get("/api/v1/orders/next-number").json()["data"]["orderNumber"] == "HD0001"

        client.post("/api/v1/orders/checkout", json={"items": [{"productId": product_id, "quantity": 1}]})
        client.post("/api/v1/orders/checkout", json={"items": [{"productId": product_id, "quantity": 3}]})

        assert client.get("/api/v1/orders/next-number").json()["data"]["orderNumber"] == "HD0003"
        stats = client.get("/api/v1/orders/stats/today").json()["data"]
        assert stats == {"orderCount": 2, "totalRevenue": 480000, "itemsSold": 4}

    def test_history_list_newest_first(self, client, product_id):
        for quantity in (1, 2):
            client.post("/api/v1/orders/checkout", json={"items": [{"productId": product_id, "quantity": quantity}]})

        body = client.get("/api/v1/orders/", params={"period": "today"}).json()

        assert body["count"] == 2
        assert body["summary"]["orderCount"] == 2
        assert body["summary"]["totalRevenue"] == 360000
        assert {o["orderNumber"] for o in body["data"]} == {"HD0001", "HD0002"}

    def test_history_search(self, client, product_id):
        client.post("/api/v1/orders/checkout", json={"items": [{"productId": product_id, "quantity": 1}]})

        found = client.get("/api/v1/orders/", params={"period": "all", "search": "pedigree"}).json()
        missing = client.get("/api/v1/orders/", params={"period": "all", "search": "whiskas"}).json()

        assert found["count"] == 1
        assert missing["count"] == 0

    def test_date_range_after_restoring_mixed_timestamps(self, client):
        """Orders with and without a UTC offset list together, newest first"""
        snapshot = {
            "version": 1,
            "products": [],
            "categories": [],
            "orders": [
                {"id": "o1", "orderNumber": "HD0001", "createdAt": "2024-05-01T10:00:00", "items": [], "total": 0},
                {"id": "o2", "orderNumber": "HD0002", "createdAt": "2024-05-03T11:00:00Z", "items": [], "total": 0},
            ],
        }
        assert client.post("/api/v1/backup/import", content=json.dumps(snapshot)).status_code == 200

        response = client.get(
            "/api/v1/orders/",
            params={"from_date": "2024-04-30T00:00:00", "to_date": "2024-05-05T00:00:00"},
        )

        assert response.status_code == 200
        assert [o["orderNumber"] for o in response.json()["data"]] == ["HD0002", "HD0001"]

    def test_single_date_bound_is_open_ended(self, client):
        snapshot = {
            "version": 1,
            "orders": [
                {"id": "o1", "orderNumber": "HD0001", "createdAt": "2024-05-01T10:00:00", "items": [], "total": 0},
                {"id": "o2", "orderNumber": "HD0002", "createdAt": "2024-06-01T10:00:00", "items": [], "total": 0},
            ],
        }
        client.post("/api/v1/backup/import", content=json.dumps(snapshot))

        since = client.get("/api/v1/orders/", params={"from_date": "2024-05-15T00:00:00"}).json()
        until = client.get("/api/v1/orders/", params={"to_date": "2024-05-15T00:00:00"}).json()

        assert [o["orderNumber"] for o in since["data"]] == ["HD0002"]
        assert [o["orderNumber"] for o in until["data"]] == ["HD0001"]

    def test_unknown_period_is_400(self, client):
        assert client.get("/api/v1/orders/", params={"period": "year"}).status_code == 400

    def test_receipt_and_delete(self, client, product_id):
        order = client.post(
            "/api/v1/orders/checkout", json={"items": [{"productId": product_id, "quantity": 1}]}
        ).json()["data"]

        receipt = client.get(f"/api/v1/orders/{order['id']}/receipt")
        assert receipt.status_code == 200
        assert "HD0001" in receipt.text
        assert "TỔNG CỘNG" in receipt.text

        assert client.delete(f"/api/v1/orders/{order['id']}").status_code == 200
        assert client.get(f"/api/v1/orders/{order['id']}").status_code == 404
        assert client.get("/api/v1/orders/next-number").json()["data"]["orderNumber"] == "HD0002"


class TestBackupAPI:

    def test_export_import_round_trip(self, client, product_id):
        client.post("/api/v1/orders/checkout", json={"items": [{"productId": product_id, "quantity": 1}]})

        exported = client.get("/api/v1/backup/export")
        assert exported.status_code == 200
        assert "petstore_backup_" in exported.headers["content-disposition"]
        snapshot = exported.json()

        client.delete("/api/v1/backup/all", params={"confirm": "true"})
        assert client.get("/api/v1/backup/stats").json()["data"]["products"] == 0

        response = client.post("/api/v1/backup/import", content=json.dumps(snapshot))

        assert response.status_code == 200
        assert response.json()["data"]["imported"] == {"categories": 0, "products": 1, "orders": 1}
        stats = client.get("/api/v1/backup/stats").json()["data"]
        assert stats["products"] == 1
        assert stats["orders"] == 1
        assert stats["total_revenue"] == 120000

    def test_malformed_backup_is_400(self, client, product_id):
        response = client.post("/api/v1/backup/import", content=b"not a backup")

        assert response.status_code == 400
        assert client.get(f"/api/v1/products/{product_id}").status_code == 200

    def test_clear_requires_confirmation(self, client, product_id):
        assert client.delete("/api/v1/backup/all").status_code == 400
        assert client.get(f"/api/v1/products/{product_id}").status_code == 200


class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["database"]["status"] == "connected"

    def test_closed_store_is_degraded_and_503(self, client, store):
        store.close()

        assert client.get("/health").json()["status"] == "degraded"
        assert client.get("/api/v1/products/").status_code == 503
