"""Shared fakes and fixtures for the test suite."""

from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest

from ticket_sales_platform.schemas.inventory import (
    LockOutcome,
    SaleOutcome,
    SaleResult,
    SaleSeat,
    SeatCoordinate,
    SeatMap,
)
from ticket_sales_platform.services.booking_service import BookingCoordinator
from ticket_sales_platform.services.event_catalog import EventSnapshot
from ticket_sales_platform.services.session_store import InMemorySessionStore


class FakeInventoryGateway:
    """In-process stand-in for the inventory service that records every call."""

    def __init__(self):
        self.seat_maps: Dict[int, Union[SeatMap, Exception]] = {}
        self.lock_handler: Callable[[int, Tuple[int, int]], Union[LockOutcome, Exception]] = (
            lambda event_id, seat: LockOutcome(succeeded=True, message="Asientos bloqueados")
        )
        self.sale_outcome: Union[SaleOutcome, Exception] = SaleOutcome(
            result=SaleResult.SUCCESS, message="Venta confirmada", remote_sale_id=555
        )
        self.fetch_calls: List[int] = []
        self.lock_calls: List[Tuple[int, List[Tuple[int, int]]]] = []
        self.sale_calls: List[Tuple[int, List[SaleSeat]]] = []

    async def fetch_seat_map(self, event_id: int) -> SeatMap:
        self.fetch_calls.append(event_id)
        result = self.seat_maps.get(event_id, SeatMap(event_id=event_id))
        if isinstance(result, Exception):
            raise result
        return result

    async def lock_seats(self, event_id: int, seats: List[SeatCoordinate]) -> LockOutcome:
        coordinates = [(seat.row, seat.column) for seat in seats]
        self.lock_calls.append((event_id, coordinates))
        result = self.lock_handler(event_id, coordinates[0])
        if isinstance(result, Exception):
            raise result
        return result

    async def confirm_sale(self, catalog_event_id: int, seats: List[SaleSeat]) -> SaleOutcome:
        self.sale_calls.append((catalog_event_id, list(seats)))
        if isinstance(self.sale_outcome, Exception):
            raise self.sale_outcome
        return self.sale_outcome


class FakeEventCatalog:
    """Event catalog backed by a list of snapshots."""

    def __init__(self, events: Optional[List[EventSnapshot]] = None, error: Optional[Exception] = None):
        self.events = events or []
        self.error = error

    async def list_active_events(self) -> List[EventSnapshot]:
        if self.error:
            raise self.error
        return list(self.events)

    async def get_event(self, event_id: int) -> Optional[EventSnapshot]:
        return next((event for event in self.events if event.event_id == event_id), None)


def locked(message: str = "Asientos bloqueados") -> LockOutcome:
    return LockOutcome(succeeded=True, message=message)


def refused(message: str) -> LockOutcome:
    return LockOutcome(succeeded=False, message=message)


@pytest.fixture
def gateway() -> FakeInventoryGateway:
    return FakeInventoryGateway()


@pytest.fixture
def catalog() -> FakeEventCatalog:
    return FakeEventCatalog([
        EventSnapshot(event_id=1, catalog_event_id=1001, row_count=10, column_count=10, title="Concierto"),
        EventSnapshot(event_id=2, catalog_event_id=None, title="Obra sin catalogo"),
    ])


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def coordinator(gateway, store, catalog) -> BookingCoordinator:
    return BookingCoordinator(gateway, store, catalog, max_seats=4)
