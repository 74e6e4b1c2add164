"""Integration tests for the HTTP surface.

Run with: pytest tests/test_api.py -v
"""

import pytest
from django.db import OperationalError
from rest_framework.test import APIClient

from ledger.stores.django_store import DjangoInventoryStore

STAFF = {"HTTP_X_ACTOR_ID": "maria.staff"}
OTHER = {"HTTP_X_ACTOR_ID": "luca.staff", "HTTP_X_ACTOR_ROLE": "USER"}
IT = {"HTTP_X_ACTOR_ID": "it.desk", "HTTP_X_ACTOR_ROLE": "TI"}


@pytest.fixture
def trip_id(api_client: APIClient) -> str:
    response = api_client.post("/api/trips", {"name": "Roma - Napoli"}, format="json", **STAFF)
    assert response.status_code == 201
    trip_id = response.data["id"]
    response = api_client.post(f"/api/trips/{trip_id}/seats", {"count": 40}, format="json")
    assert response.status_code == 201
    return trip_id


def sell(api_client, trip_id, number, headers=STAFF, price="85.00"):
    return api_client.post(
        f"/api/trips/{trip_id}/seats/{number}/sale",
        {"buyer": {"name": "Rossi", "phone": "333 1234567"}, "price": price, "payment_method": "cash"},
        format="json",
        **headers,
    )


@pytest.mark.django_db
class TestTripEndpoints:
    """Tests for /api/trips"""

    def test_create_and_list(self, api_client: APIClient, trip_id):
        response = api_client.get("/api/trips")
        assert response.status_code == 200
        assert [t["id"] for t in response.data] == [trip_id]
        assert response.data[0]["owner_id"] == "maria.staff"

    def test_create_requires_actor(self, api_client: APIClient):
        response = api_client.post("/api/trips", {"name": "Roma - Napoli"}, format="json")
        assert response.status_code == 400
        assert response.data["code"] == "INVALID_REQUEST"

    def test_invalid_id_format(self, api_client: APIClient):
        response = api_client.get("/api/trips/not-a-uuid")
        assert response.status_code == 400
        assert response.data["code"] == "INVALID_IDENTIFIER"

    def test_not_found(self, api_client: APIClient):
        response = api_client.get("/api/trips/1f0b8f52-3a43-4c3e-9b8e-1f5f7f4c2d11")
        assert response.status_code == 404

    def test_provision_twice_conflicts(self, api_client: APIClient, trip_id):
        response = api_client.post(f"/api/trips/{trip_id}/seats", {"count": 10}, format="json")
        assert response.status_code == 409
        assert response.data["code"] == "TRIP_ALREADY_PROVISIONED"

    def test_seat_map_filter(self, api_client: APIClient, trip_id):
        sell(api_client, trip_id, 5)
        response = api_client.get(f"/api/trips/{trip_id}/seats?status=sold")
        assert [s["number"] for s in response.data] == [5]
        assert response.data[0]["sale"]["buyer"]["name"] == "Rossi"
        assert response.data[0]["sale"]["price"] == "85.00"


@pytest.mark.django_db
class TestSeatSaleEndpoints:
    """Tests for /api/trips/{id}/seats/{n}/sale"""

    def test_sell_then_conflict(self, api_client: APIClient, trip_id):
        assert sell(api_client, trip_id, 5).status_code == 201
        response = sell(api_client, trip_id, 5, headers=OTHER)
        assert response.status_code == 409
        assert response.data["code"] == "SEAT_ALREADY_SOLD"
        assert response.data["message"].startswith("Seat 5 already sold at ")

    def test_malformed_price(self, api_client: APIClient, trip_id):
        response = sell(api_client, trip_id, 5, price="85,00")
        assert response.status_code == 400
        assert response.data["code"] == "INVALID_AMOUNT"

    def test_overlong_buyer_name(self, api_client: APIClient, trip_id):
        response = api_client.post(
            f"/api/trips/{trip_id}/seats/5/sale",
            {"buyer": {"name": "R" * 256}, "price": "85", "payment_method": "cash"},
            format="json",
            **STAFF,
        )
        assert response.status_code == 400
        assert "buyer" in response.data
        assert api_client.get(f"/api/trips/{trip_id}/seats?status=sold").data == []

    def test_cancel_requires_owner_or_elevated_role(self, api_client: APIClient, trip_id):
        sell(api_client, trip_id, 5)
        url = f"/api/trips/{trip_id}/seats/5/sale"
        response = api_client.delete(url, **OTHER)
        assert response.status_code == 403
        assert api_client.delete(url, **IT).status_code == 204

        detail = api_client.get(url)
        assert detail.data["seat"]["status"] == "free"
        assert detail.data["sales"] == []
        assert detail.data["cancelled"][0]["cancelled_by"] == "it.desk"

    def test_cancel_free_seat(self, api_client: APIClient, trip_id):
        response = api_client.delete(f"/api/trips/{trip_id}/seats/1/sale", **STAFF)
        assert response.status_code == 409
        assert response.data["code"] == "SEAT_NOT_SOLD"

    def test_group_sale(self, api_client: APIClient, trip_id):
        payload = {
            "payment_method": "card",
            "seats": [
                {"seat_number": 10, "buyer": {"name": "Rossi"}, "price": "40"},
                {"seat_number": 11, "buyer": {"name": "Rossi jr"}, "price": "20"},
            ],
        }
        response = api_client.post(f"/api/trips/{trip_id}/sales", payload, format="json", **STAFF)
        assert response.status_code == 201
        assert [s["seat_number"] for s in response.data] == [10, 11]
        assert len(api_client.get(f"/api/trips/{trip_id}/sales").data) == 2

    def test_database_timeout_is_retryable(self, api_client: APIClient, trip_id, monkeypatch):
        def timeout(self, trip_id, number):
            raise OperationalError("canceling statement due to lock timeout")

        monkeypatch.setattr(DjangoInventoryStore, "lock_seat", timeout)
        response = sell(api_client, trip_id, 5)
        assert response.status_code == 503
        assert response.data["retryable"] is True
        assert "lock timeout" not in response.data["message"]


@pytest.mark.django_db
class TestOrderEndpoints:
    """Tests for /api/orders and /api/service-lines"""

    @pytest.fixture
    def order(self, api_client: APIClient) -> dict:
        payload = {
            "client_ref": "CLI-0042",
            "deposit": "40",
            "passengers": [
                {"name": "Anna Rossi", "services": [{"service_type": "flight", "neto": "100", "venduto": "120"}]},
                {"name": "Marco Rossi", "services": [{"service_type": "hotel", "neto": "50", "venduto": "70"}]},
            ],
        }
        response = api_client.post("/api/orders", payload, format="json", **STAFF)
        assert response.status_code == 201
        return response.data

    @staticmethod
    def line_id(order: dict, passenger_name: str) -> str:
        passenger = next(p for p in order["passengers"] if p["name"] == passenger_name)
        return passenger["service_lines"][0]["id"]

    def test_create_order_totals(self, order):
        assert order["totals"]["total_sale_price"] == "190.00"
        assert order["totals"]["agency_fee"] == "40.00"
        assert order["totals"]["balance_due"] == "150.00"

    def test_update_amounts(self, api_client: APIClient, order):
        line_id = self.line_id(order, "Anna Rossi")
        response = api_client.patch(f"/api/service-lines/{line_id}/amounts", {"venduto": "130"}, format="json")
        assert response.status_code == 200
        detail = api_client.get(f"/api/orders/{order['id']}")
        assert detail.data["totals"]["total_sale_price"] == "200.00"

    def test_blank_amount_is_not_zero(self, api_client: APIClient, order):
        line_id = self.line_id(order, "Anna Rossi")
        response = api_client.patch(f"/api/service-lines/{line_id}/amounts", {"neto": ""}, format="json")
        assert response.status_code == 400
        assert response.data["code"] == "INVALID_AMOUNT"

    def test_amount_above_column_bound(self, api_client: APIClient, order):
        line_id = self.line_id(order, "Anna Rossi")
        url = f"/api/service-lines/{line_id}/amounts"
        response = api_client.patch(url, {"venduto": "10000000000000"}, format="json")
        assert response.status_code == 400
        assert response.data["code"] == "INVALID_AMOUNT"

        response = api_client.patch(url, {"venduto": "9999999999.99"}, format="json")
        assert response.status_code == 400
        assert response.data["code"] == "INVALID_AMOUNT"
        assert api_client.get("/api/audit").data["is_clean"] is True

    def test_overlong_service_type(self, api_client: APIClient, order):
        passenger_id = order["passengers"][0]["id"]
        response = api_client.post(
            f"/api/passengers/{passenger_id}/services",
            {"service_type": "x" * 101, "neto": "1", "venduto": "2"},
            format="json",
        )
        assert response.status_code == 400
        assert "service_type" in response.data

    def test_payment_state(self, api_client: APIClient, order):
        line_id = self.line_id(order, "Anna Rossi")
        response = api_client.put(f"/api/service-lines/{line_id}/payment", {"state": "Pagato"}, format="json")
        assert response.status_code == 200
        assert response.data["payment_state"] == "Pagato"
        assert response.data["paid_at"] is not None

    def test_last_passenger_cannot_be_removed(self, api_client: APIClient):
        payload = {"client_ref": "CLI-1", "passengers": [{"name": "Solo"}]}
        order = api_client.post("/api/orders", payload, format="json", **STAFF).data
        passenger_id = order["passengers"][0]["id"]
        response = api_client.delete(f"/api/passengers/{passenger_id}")
        assert response.status_code == 400
        assert response.data["code"] == "CANNOT_REMOVE_LAST_PASSENGER"

    def test_installments_and_audit(self, api_client: APIClient, order):
        url = f"/api/orders/{order['id']}/installments"
        plan = {"installments": [{"amount": "75", "due_date": "2026-04-01"}, {"amount": "50"}]}
        response = api_client.put(url, plan, format="json")
        assert response.status_code == 200
        assert response.data["unpaid_total"] == "125.00"

        audit = api_client.get("/api/audit")
        assert audit.data["is_clean"] is False
        assert audit.data["summary"]["installment_drift"] == 1

        paid = api_client.post(f"{url}/1/paid")
        assert paid.data["paid"] is True
