"""
Booking session API endpoints.
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from ticket_sales_platform.schemas.session import BookingSession, SelectSeatsRequest, SetNamesRequest
from ticket_sales_platform.services.booking_service import BookingCoordinator
from ticket_sales_platform.utils.dependencies import get_booking_coordinator, get_current_principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


@router.get("", response_model=BookingSession, response_model_by_alias=False)
async def get_session(
    principal_id: str = Depends(get_current_principal),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator)
):
    """
    Get the caller's booking session.

    Returns the selected event, seats, passenger names, the stage of the
    purchase flow and the last lock and sale outcomes.
    """
    return await coordinator.get_session_state(principal_id)


@router.put("/event/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def set_event(
    event_id: int,
    principal_id: str = Depends(get_current_principal),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator)
):
    """
    Select the event to buy seats for.

    Switching to another event drops the current seat selection and names.
    """
    await coordinator.set_event(principal_id, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/seats", status_code=status.HTTP_204_NO_CONTENT)
async def select_seats(
    request: SelectSeatsRequest,
    principal_id: str = Depends(get_current_principal),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator)
):
    """
    Replace the seat selection.

    Only records intent; seats are held once `POST /seats/lock` succeeds.
    """
    await coordinator.select_seats(principal_id, request.seats)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/names", status_code=status.HTTP_204_NO_CONTENT)
async def set_names(
    request: SetNamesRequest,
    principal_id: str = Depends(get_current_principal),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator)
):
    """Attach passenger names to selected seats, keyed by `row-column` (e.g. `B-3`)."""
    await coordinator.set_names(principal_id, request.names)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_session(
    principal_id: str = Depends(get_current_principal),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator)
):
    """Clear the booking session. Clearing an empty session is a no-op."""
    await coordinator.clear(principal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
