"""
Sale confirmation API endpoints.
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from ticket_sales_platform.schemas.inventory import SaleOutcome
from ticket_sales_platform.services.booking_service import BookingCoordinator
from ticket_sales_platform.utils.dependencies import get_booking_coordinator, get_current_principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sales", tags=["sales"])


@router.post(
    "/confirm",
    response_model=SaleOutcome,
    response_model_by_alias=False,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": SaleOutcome, "description": "Sale refused by the inventory service"}},
)
async def confirm_sale(
    response: Response,
    principal_id: str = Depends(get_current_principal),
    coordinator: BookingCoordinator = Depends(get_booking_coordinator)
):
    """
    Confirm the sale of the locked and named seats.

    Returns 201 when the inventory service records the sale and 200 with a
    FAILURE result when it refuses. The sale is never retried automatically.
    """
    outcome = await coordinator.confirm_sale(principal_id)
    if not outcome.succeeded:
        response.status_code = status.HTTP_200_OK
    return outcome
