"""Tests for the HTTP inventory gateway against a mocked transport."""

import json

import httpx
import pytest

from ticket_sales_platform.schemas.inventory import (
    LockFailureKind,
    SaleResult,
    SaleSeat,
    SeatCoordinate,
    SeatState,
)
from ticket_sales_platform.services.inventory_gateway import HttpInventoryGateway
from ticket_sales_platform.utils.circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitState
from ticket_sales_platform.utils.exceptions import (
    InventoryProtocolError,
    InventoryRejectionError,
    TransportUnavailableError,
)
from ticket_sales_platform.utils.retry import RetryConfig


class Recorder:
    """MockTransport handler that records requests and replays a responder"""

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def make_gateway(responder, failure_threshold=100, attempts=2):
    recorder = Recorder(responder)
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder), base_url="http://inventory")
    gateway = HttpInventoryGateway(
        client=client,
        circuit_breaker=CircuitBreaker("test", CircuitBreakerConfig(failure_threshold=failure_threshold)),
        fetch_retry=RetryConfig(max_attempts=attempts, base_delay=0, jitter=False),
    )
    return gateway, recorder


def refuse_connection(request):
    raise httpx.ConnectError("Connection refused", request=request)


class TestFetchSeatMap:
    """GET /api/asientos/evento/{id}"""

    async def test_maps_remote_states(self):
        body = {
            "eventoId": 5,
            "asientos": [
                {"fila": "A", "numero": 1, "estado": "LIBRE", "seleccionado": False},
                {"fila": "A", "numero": 2, "estado": "LIBRE", "seleccionado": True},
                {"fila": "B", "numero": 1, "estado": "OCUPADO"},
                {"fila": 2, "numero": 2, "estado": "BLOQUEADO"},
                {"fila": "C", "numero": 1, "estado": "DESCONOCIDO"},
            ],
        }
        gateway, recorder = make_gateway(lambda request: httpx.Response(200, json=body))

        seat_map = await gateway.fetch_seat_map(5)

        assert recorder.requests[0].url.path == "/api/asientos/evento/5"
        assert [seat.state for seat in seat_map.seats] == [
            SeatState.FREE, SeatState.SELECTED, SeatState.SOLD, SeatState.LOCKED, SeatState.LOCKED,
        ]
        assert seat_map.seats[3].row == "2"
        assert [(seat.row, seat.column) for seat in seat_map.free_seats()] == [("A", 1)]

    async def test_not_found_is_cold(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(404))

        seat_map = await gateway.fetch_seat_map(5)

        assert seat_map.event_id == 5
        assert seat_map.is_empty

    async def test_empty_list_is_cold(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(200, json={"eventoId": 5, "asientos": []}))
        assert (await gateway.fetch_seat_map(5)).is_empty

    async def test_other_event_is_protocol_error(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(200, json={"eventoId": 6, "asientos": []}))
        with pytest.raises(InventoryProtocolError):
            await gateway.fetch_seat_map(5)

    async def test_malformed_body_is_protocol_error(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(InventoryProtocolError):
            await gateway.fetch_seat_map(5)

    async def test_transport_error_is_retried_then_raised(self):
        gateway, recorder = make_gateway(refuse_connection, attempts=3)

        with pytest.raises(TransportUnavailableError):
            await gateway.fetch_seat_map(5)
        assert len(recorder.requests) == 3

    async def test_service_unavailable_is_transport_error(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(503), attempts=1)
        with pytest.raises(TransportUnavailableError):
            await gateway.fetch_seat_map(5)

    async def test_client_error_is_rejection(self):
        gateway, recorder = make_gateway(lambda request: httpx.Response(400, text="bad id"))

        with pytest.raises(InventoryRejectionError):
            await gateway.fetch_seat_map(5)
        assert len(recorder.requests) == 1


class TestLockSeats:
    """POST /api/asientos/bloquear"""

    async def test_sends_integer_coordinates(self):
        gateway, recorder = make_gateway(lambda request: httpx.Response(200, json={
            "exitoso": True,
            "mensaje": "Asientos bloqueados",
            "asientosBloqueados": [{"fila": 2, "numero": 3}],
            "asientosNoDisponibles": None,
        }))

        outcome = await gateway.lock_seats(5, [SeatCoordinate(row=2, column=3)])

        assert json.loads(recorder.requests[0].content) == {
            "eventoId": 5, "asientos": [{"fila": 2, "columna": 3}],
        }
        assert outcome.succeeded
        assert outcome.failure_kind == LockFailureKind.NONE
        assert outcome.locked_seats[0].row == "2"
        assert outcome.unavailable_seats == []

    async def test_conflict_with_lock_body_is_an_outcome(self):
        gateway, recorder = make_gateway(lambda request: httpx.Response(409, json={
            "exitoso": False,
            "mensaje": "Asiento ocupado",
            "asientosNoDisponibles": [{"fila": 2, "numero": 3}],
        }))

        outcome = await gateway.lock_seats(5, [SeatCoordinate(row=2, column=3)])

        assert not outcome.succeeded
        assert outcome.failure_kind == LockFailureKind.SEAT_UNAVAILABLE
        assert len(recorder.requests) == 1

    async def test_transport_message_is_classified(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(200, json={
            "exitoso": False, "mensaje": "I/O error on POST request for catedra",
        }))

        outcome = await gateway.lock_seats(5, [SeatCoordinate(row=1, column=1)])

        assert outcome.failure_kind == LockFailureKind.TRANSPORT

    async def test_client_error_without_lock_body_is_rejection(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(400, json={"error": "bad request"}))
        with pytest.raises(InventoryRejectionError):
            await gateway.lock_seats(5, [SeatCoordinate(row=1, column=1)])

    async def test_lock_is_not_retried(self):
        gateway, recorder = make_gateway(refuse_connection, attempts=3)

        with pytest.raises(TransportUnavailableError):
            await gateway.lock_seats(5, [SeatCoordinate(row=1, column=1)])
        assert len(recorder.requests) == 1


class TestConfirmSale:
    """POST /api/ventas/confirmar"""

    async def test_successful_sale(self):
        gateway, recorder = make_gateway(lambda request: httpx.Response(200, json={
            "resultado": "EXITOSA", "mensaje": "Venta realizada", "ventaIdCatedra": 555,
        }))
        seat = SaleSeat(row=2, column=3, first_name="Juan", last_name="Pérez")

        outcome = await gateway.confirm_sale(1001, [seat])

        assert json.loads(recorder.requests[0].content) == {
            "eventoId": 1001,
            "asientos": [{"fila": 2, "columna": 3, "nombrePersona": "Juan", "apellidoPersona": "Pérez"}],
        }
        assert outcome.result == SaleResult.SUCCESS
        assert outcome.remote_sale_id == 555

    async def test_other_result_is_failure(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(200, json={
            "resultado": "RECHAZADA", "mensaje": "Asiento vendido",
        }))

        outcome = await gateway.confirm_sale(1001, [SaleSeat(row=1, column=1, first_name="A", last_name="B")])

        assert outcome.result == SaleResult.FAILURE
        assert outcome.message == "Asiento vendido"


class TestCircuitBreaker:
    """Fail fast once the inventory service is known to be down"""

    async def test_opens_after_repeated_transport_failures(self):
        gateway, recorder = make_gateway(refuse_connection, failure_threshold=2, attempts=1)

        for _ in range(2):
            with pytest.raises(TransportUnavailableError):
                await gateway.fetch_seat_map(5)
        assert gateway.circuit_breaker.state == CircuitState.OPEN

        with pytest.raises(TransportUnavailableError):
            await gateway.lock_seats(5, [SeatCoordinate(row=1, column=1)])
        assert len(recorder.requests) == 2

    async def test_rejections_do_not_open_the_circuit(self):
        gateway, _ = make_gateway(lambda request: httpx.Response(400, text="no"), failure_threshold=1)

        with pytest.raises(InventoryRejectionError):
            await gateway.fetch_seat_map(5)
        assert gateway.circuit_breaker.state == CircuitState.CLOSED
