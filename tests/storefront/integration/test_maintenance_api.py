"""Integration tests for the maintenance API via TestClient."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.api.routes import maintenance_router
from storefront.cart.cart import CartStatus
from storefront.order.order import OrderStatus


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(maintenance_router)
    return TestClient(app)


class TestRunCleanupEndpoint:
    def test_full_pass_returns_report(self, client, now, make_order, make_cart, reload):
        order = make_order()
        cart = make_cart()

        response = client.post("/maintenance/cleanup", json={"as_of": now.isoformat()})

        assert response.status_code == 200
        body = response.json()
        assert body["has_errors"] is False
        assert [s["stage"] for s in body["stages"]] == ["reservations", "orders", "carts", "payments"]
        assert reload(order).status == OrderStatus.CANCELLED.value
        assert reload(cart).status == CartStatus.ABANDONED.value

    def test_without_body_uses_current_time(self, client):
        response = client.post("/maintenance/cleanup")

        assert response.status_code == 200
        assert response.json()["has_errors"] is False


class TestRunStageEndpoint:
    def test_single_stage(self, client, now, make_cart):
        make_cart()

        response = client.post("/maintenance/cleanup/carts", json={"as_of": now.isoformat()})

        assert response.status_code == 200
        body = response.json()
        assert body["stage"] == "carts"
        assert body["succeeded"] == 1
        assert body["has_errors"] is False

    def test_unknown_stage(self, client):
        response = client.post("/maintenance/cleanup/wishlists")

        assert response.status_code == 404

    def test_stage_query_failure(self, client):
        with patch(
            "storefront.inventory.expiry.ReservationReconciler.cleanup_expired_reservations",
            side_effect=ConnectionError("database unreachable"),
        ):
            response = client.post("/maintenance/cleanup/reservations")

        assert response.status_code == 500
        assert "database unreachable" in response.json()["detail"]


class TestCleanupStatsEndpoint:
    def test_stats(self, client, make_order, make_cart, make_reservation):
        make_reservation()
        make_order()
        make_cart()

        # Builders pin every deadline in the past, so "now" sees them all as expired
        response = client.get("/maintenance/cleanup/stats")

        assert response.status_code == 200
        assert response.json() == {
            "expired_reservations": 1,
            "expired_carts": 1,
            "pending_orders": 1,
            "expired_orders": 1,
            "expired_payments": 1,
        }
