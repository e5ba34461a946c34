"""
FastAPI dependencies for authentication and service lookup.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..services.booking_service import BookingCoordinator
from ..services.inventory_gateway import InventoryGateway
from ..utils.auth import verify_token
from ..utils.exceptions import AuthenticationError
from ..utils.logging_config import log_security_event


# HTTP Bearer token scheme; missing credentials are reported as AuthenticationError
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Resolve the authenticated principal from the bearer token.

    Returns:
        The token's subject, used as the booking session owner

    Raises:
        AuthenticationError: If the token is missing or invalid
    """
    if credentials is None:
        raise AuthenticationError("Missing bearer token")

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        log_security_event(
            "invalid_token",
            {"path": request.url.path, "client_ip": request.client.host if request.client else None},
        )
        raise AuthenticationError("Could not validate credentials")

    request.state.principal_id = token_data.principal_id
    return token_data.principal_id


def get_booking_coordinator(request: Request) -> BookingCoordinator:
    """Booking coordinator built at startup."""
    return request.app.state.booking_coordinator


def get_inventory_gateway(request: Request) -> InventoryGateway:
    """Inventory gateway shared by the whole process."""
    return request.app.state.inventory_gateway
