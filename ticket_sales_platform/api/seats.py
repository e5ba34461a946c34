"""
Seat map and seat locking API endpoints.
"""

import logging

from fastapi import APIRouter, Depends

from ticket_sales_platform.schemas.inventory import LockOutcome, SeatMap
from ticket_sales_platform.services.booking_service import BookingCoordinator
from ticket_sales_platform.services.inventory_gateway import InventoryGateway
from ticket_sales_platform.utils.dependencies import (
    get_booking_coordinator,
    get_current_principal,
    get_inventory_gateway,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/seats", tags=["seats"])


@router.get("/{event_id}/map", response_model=SeatMap, response_model_by_alias=False)
async def get_seat_map(
    event_id: int,
    gateway: InventoryGateway = Depends(get_inventory_gateway)
):
    """
    Get the seat map of an event from the inventory service.

    An empty seat list means the inventory service has not materialized the
    event yet.
    """
    return await gateway.fetch_seat_map(event_id)


@router.post("/lock", response_model=LockOutcome, response_model_by_alias=False)
async def lock_seats(
    principal_id: str = Depends(get_current_principal),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator)
):
    """
    Lock the seats selected in the caller's session.

    The inventory service may grant only some of them; the outcome lists the
    locked and unavailable seats. A failed lock can be retried after
    re-selecting.
    """
    return await coordinator.lock_seats(principal_id)
