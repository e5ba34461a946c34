"""Tests for the REST surface."""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from ticket_sales_platform.config import get_settings
from ticket_sales_platform.main import app
from ticket_sales_platform.schemas.inventory import SaleOutcome, SaleResult, Seat, SeatMap, SeatState
from ticket_sales_platform.utils.dependencies import get_booking_coordinator, get_inventory_gateway
from ticket_sales_platform.utils.exceptions import TransportUnavailableError

from conftest import refused


def bearer(subject: str = "user-42") -> dict:
    settings = get_settings()
    token = jwt.encode({"sub": subject}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(coordinator, gateway):
    app.dependency_overrides[get_booking_coordinator] = lambda: coordinator
    app.dependency_overrides[get_inventory_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAuthentication:
    """Bearer token handling"""

    def test_missing_token(self, client):
        response = client.get("/api/v1/session")

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_bad_signature(self, client):
        token = jwt.encode({"sub": "user-42"}, "another-secret", algorithm="HS256")
        response = client.get("/api/v1/session", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestPurchaseFlow:
    """Session, lock and sale endpoints"""

    def test_full_flow(self, client, gateway):
        headers = bearer()

        assert client.put("/api/v1/session/event/1", headers=headers).status_code == 204
        response = client.put("/api/v1/session/seats", headers=headers,
                              json={"seats": [{"row": "B", "column": 3}]})
        assert response.status_code == 204

        response = client.post("/api/v1/seats/lock", headers=headers)
        assert response.status_code == 200
        assert response.json()["succeeded"] is True

        response = client.put("/api/v1/session/names", headers=headers, json={
            "names": {"B-3": {"first_name": "Juan", "last_name": "Pérez"}},
        })
        assert response.status_code == 204

        response = client.post("/api/v1/sales/confirm", headers=headers)
        assert response.status_code == 201
        assert response.json() == {"result": "SUCCESS", "message": "Venta confirmada", "remote_sale_id": 555}

        state = client.get("/api/v1/session", headers=headers).json()
        assert state["stage"] == "SALE_CONFIRMED"
        assert state["names"]["B-3"] == {"first_name": "Juan", "last_name": "Pérez"}
        assert state["last_lock"]["succeeded"] is True

        assert client.delete("/api/v1/session", headers=headers).status_code == 204
        assert client.get("/api/v1/session", headers=headers).json()["stage"] == "EMPTY"
        assert gateway.sale_calls[0][0] == 1001

    def test_failed_sale_is_200(self, client, gateway):
        gateway.sale_outcome = SaleOutcome(result=SaleResult.FAILURE, message="Asiento vendido")
        headers = bearer()
        client.put("/api/v1/session/event/1", headers=headers)
        client.put("/api/v1/session/seats", headers=headers,
                   json={"seats": [{"row": "B", "column": 3, "first_name": "Juan", "last_name": "Pérez"}]})
        client.post("/api/v1/seats/lock", headers=headers)

        response = client.post("/api/v1/sales/confirm", headers=headers)

        assert response.status_code == 200
        assert response.json()["result"] == "FAILURE"

    def test_failed_lock_is_returned(self, client, gateway):
        gateway.lock_handler = lambda event_id, seat: refused("Asiento ocupado")
        headers = bearer()
        client.put("/api/v1/session/event/1", headers=headers)
        client.put("/api/v1/session/seats", headers=headers, json={"seats": [{"row": "A", "column": 1}]})

        response = client.post("/api/v1/seats/lock", headers=headers)

        assert response.status_code == 200
        assert response.json()["succeeded"] is False
        assert response.json()["message"] == "Asiento ocupado"


class TestErrorMapping:
    """Platform exceptions become status codes"""

    def test_out_of_order_step_is_conflict(self, client):
        response = client.put("/api/v1/session/seats", headers=bearer(),
                              json={"seats": [{"row": "A", "column": 1}]})

        assert response.status_code == 409
        assert response.json()["error"]["error_code"] == "SESSION_STATE_VIOLATION"

    def test_invalid_row_is_unprocessable(self, client):
        headers = bearer()
        client.put("/api/v1/session/event/1", headers=headers)

        response = client.put("/api/v1/session/seats", headers=headers,
                              json={"seats": [{"row": "AA", "column": 1}]})

        assert response.status_code == 422
        assert response.json()["error"]["error_code"] == "INVALID_ROW_ENCODING"

    def test_unreachable_inventory_is_unavailable(self, client, gateway):
        gateway.lock_handler = lambda event_id, seat: TransportUnavailableError("Connection refused")
        headers = bearer()
        client.put("/api/v1/session/event/1", headers=headers)
        client.put("/api/v1/session/seats", headers=headers, json={"seats": [{"row": "A", "column": 1}]})

        response = client.post("/api/v1/seats/lock", headers=headers)

        assert response.status_code == 503
        assert response.json()["error"]["error_code"] == "INVENTORY_UNAVAILABLE"
        assert response.headers["Retry-After"] == "5"

    def test_unknown_event_on_confirm_is_not_found(self, client):
        headers = bearer()
        client.put("/api/v1/session/event/99", headers=headers)
        client.put("/api/v1/session/seats", headers=headers,
                   json={"seats": [{"row": "A", "column": 1, "first_name": "Ana", "last_name": "Gómez"}]})
        client.post("/api/v1/seats/lock", headers=headers)

        response = client.post("/api/v1/sales/confirm", headers=headers)

        assert response.status_code == 404


class TestSeatsAndOperations:
    """Seat map, warm-up trigger and health endpoints"""

    def test_seat_map(self, client, gateway):
        gateway.seat_maps[1] = SeatMap(event_id=1, seats=[Seat(row="A", column=1, state=SeatState.FREE)])

        response = client.get("/api/v1/seats/1/map")

        assert response.status_code == 200
        assert response.json() == {"event_id": 1, "seats": [{"row": "A", "column": 1, "state": "FREE"}]}

    def test_warmup_is_queued(self, client, monkeypatch):
        queued = []
        fake_task = SimpleNamespace(delay=lambda: queued.append(1) or SimpleNamespace(id="task-1"))
        monkeypatch.setattr("ticket_sales_platform.api.warmup.warmup_inventory_task", fake_task)

        response = client.post("/api/v1/warmup", headers=bearer())

        assert response.status_code == 202
        assert response.json() == {"task_id": "task-1", "status": "queued"}
        assert queued == [1]

    def test_health_and_metrics(self, client):
        assert client.get("/health").json()["status"] == "healthy"

        metrics = client.get("/metrics").json()
        assert "circuit_breakers" in metrics
        assert metrics["warmup"]["status"] == "disabled"

    def test_request_id_header(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc"})
        assert response.headers["X-Request-ID"] == "abc"
