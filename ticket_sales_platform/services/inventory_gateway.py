"""
Client for the external seat inventory service.

The inventory service owns seat occupancy. This module turns its HTTP contract
into typed results: seat maps, lock outcomes and sale outcomes. Transport
problems become ``TransportUnavailableError``; well-formed refusals become
either a failed ``LockOutcome`` or ``InventoryRejectionError``.
"""

import logging
from typing import Any, List, Optional, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..config import get_settings
from ..schemas.inventory import (
    LockOutcome,
    LockRequest,
    RemoteSaleResponse,
    RemoteSeatMap,
    SaleOutcome,
    SaleRequest,
    SaleSeat,
    SeatCoordinate,
    SeatMap,
)
from ..utils.circuit_breaker import CircuitBreaker, get_inventory_circuit_breaker
from ..utils.exceptions import (
    InventoryProtocolError,
    InventoryRejectionError,
    TransportUnavailableError,
)
from ..utils.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

SEAT_MAP_PATH = "/api/asientos/evento/{event_id}"
LOCK_PATH = "/api/asientos/bloquear"
CONFIRM_SALE_PATH = "/api/ventas/confirmar"


class InventoryGateway(Protocol):
    """Capabilities the booking and warm-up flows need from the inventory service."""

    async def fetch_seat_map(self, event_id: int) -> SeatMap:
        ...

    async def lock_seats(self, event_id: int, seats: List[SeatCoordinate]) -> LockOutcome:
        ...

    async def confirm_sale(self, catalog_event_id: int, seats: List[SaleSeat]) -> SaleOutcome:
        ...


class HttpInventoryGateway:
    """``InventoryGateway`` backed by the inventory service's REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        fetch_retry: Optional[RetryConfig] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.inventory_service_url
        self.timeout = timeout if timeout is not None else settings.inventory_timeout_seconds
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
        )
        if circuit_breaker is None and settings.enable_circuit_breakers:
            circuit_breaker = get_inventory_circuit_breaker()
        self.circuit_breaker = circuit_breaker
        self.fetch_retry = fetch_retry or RetryConfig(
            max_attempts=settings.inventory_fetch_retry_attempts,
            base_delay=settings.inventory_retry_base_delay,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch_seat_map(self, event_id: int) -> SeatMap:
        """
        Fetch the seat map of an event.

        Returns an empty ``SeatMap`` when the inventory service has nothing
        materialized for the event yet (empty list or 404).

        Raises:
            TransportUnavailableError: If the service stays unreachable after retries
            InventoryProtocolError: If the response is malformed or for another event
            InventoryRejectionError: If the service refuses the request
        """
        return await retry_async(
            self._fetch_seat_map_once,
            self.fetch_retry,
            event_id,
            retryable_exceptions=(TransportUnavailableError,),
        )

    async def _fetch_seat_map_once(self, event_id: int) -> SeatMap:
        response = await self._send("GET", SEAT_MAP_PATH.format(event_id=event_id))

        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info("Inventory has no seat map for event %s yet", event_id)
            return SeatMap(event_id=event_id)
        self._raise_for_rejection(response, "fetch seat map")

        if not response.content:
            return SeatMap(event_id=event_id)

        body = self._parse(response, RemoteSeatMap, "seat map")
        if body.event_id is not None and body.event_id != event_id:
            raise InventoryProtocolError(
                f"Seat map requested for event {event_id} but received event {body.event_id}",
                details={"requested_event_id": event_id, "received_event_id": body.event_id},
            )

        return SeatMap(
            event_id=event_id,
            seats=[seat.to_seat() for seat in body.seats or []],
        )

    async def lock_seats(self, event_id: int, seats: List[SeatCoordinate]) -> LockOutcome:
        """
        Ask the inventory service to lock exactly ``seats``.

        A refusal that comes with a lock-shaped body is returned as a failed
        ``LockOutcome`` rather than raised, since the service may grant a subset.
        """
        payload = LockRequest(event_id=event_id, seats=seats).model_dump(by_alias=True)
        response = await self._send("POST", LOCK_PATH, json=payload)

        if response.is_client_error and self._looks_like_lock_body(response):
            outcome = self._parse(response, LockOutcome, "lock")
            logger.debug("Lock refused for event %s: %s", event_id, outcome.message)
            return outcome
        self._raise_for_rejection(response, "lock seats")

        outcome = self._parse(response, LockOutcome, "lock")
        logger.debug(
            "Lock for event %s: succeeded=%s locked=%d unavailable=%d",
            event_id, outcome.succeeded, len(outcome.locked_seats), len(outcome.unavailable_seats)
        )
        return outcome

    async def confirm_sale(self, catalog_event_id: int, seats: List[SaleSeat]) -> SaleOutcome:
        """Confirm a sale. Called once per request; a sale is never retried here."""
        payload = SaleRequest(event_id=catalog_event_id, seats=seats).model_dump(by_alias=True)
        response = await self._send("POST", CONFIRM_SALE_PATH, json=payload)
        self._raise_for_rejection(response, "confirm sale")

        outcome = self._parse(response, RemoteSaleResponse, "sale").to_outcome()
        logger.info(
            "Sale for catalog event %s finished with %s (remote sale %s)",
            catalog_event_id, outcome.result.value, outcome.remote_sale_id
        )
        return outcome

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        if self.circuit_breaker is not None:
            return await self.circuit_breaker.call(self._request, method, path, **kwargs)
        return await self._request(method, path, **kwargs)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise TransportUnavailableError(
                f"{method} {path} failed: {e!r}",
                details={"path": path, "error_type": type(e).__name__},
            ) from e

        if response.status_code in (
            httpx.codes.BAD_GATEWAY,
            httpx.codes.SERVICE_UNAVAILABLE,
            httpx.codes.GATEWAY_TIMEOUT,
        ):
            raise TransportUnavailableError(
                f"{method} {path} answered {response.status_code}",
                status_code=response.status_code,
                details={"path": path},
            )
        return response

    @staticmethod
    def _raise_for_rejection(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        raise InventoryRejectionError(
            f"Inventory refused to {operation} ({response.status_code}): {response.text[:200]}",
            status_code=response.status_code,
        )

    @staticmethod
    def _looks_like_lock_body(response: httpx.Response) -> bool:
        try:
            body = response.json()
        except ValueError:
            return False
        return isinstance(body, dict) and "exitoso" in body

    @staticmethod
    def _parse(response: httpx.Response, model: Any, what: str):
        try:
            return model.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise InventoryProtocolError(
                f"Malformed {what} response: {e}",
                status_code=response.status_code,
            ) from e
