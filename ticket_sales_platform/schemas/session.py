"""
Pydantic schemas for the per-user booking session.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .inventory import LockOutcome, SaleOutcome
from ..utils.seat_codec import seat_key


class SessionStage(str, Enum):
    """Where a booking session stands in the purchase flow."""
    EMPTY = "EMPTY"
    EVENT_SET = "EVENT_SET"
    SEATS_SELECTED = "SEATS_SELECTED"
    SEATS_LOCKED = "SEATS_LOCKED"
    NAMES_SET = "NAMES_SET"
    SALE_CONFIRMED = "SALE_CONFIRMED"


class PassengerName(BaseModel):
    """First and last name of the person attending on a seat."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class SelectedSeat(BaseModel):
    """A seat the user picked, optionally already carrying a passenger name."""
    row: str = Field(..., min_length=1, max_length=10, description="Row label, letter or number")
    column: int = Field(..., description="Seat number within the row")
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def key(self) -> str:
        return seat_key(self.row, self.column)

    @property
    def has_name(self) -> bool:
        return bool(self.first_name) and bool(self.last_name)


class BookingSession(BaseModel):
    """
    Booking intent of one authenticated principal.

    This is never the source of truth for seat occupancy; the inventory
    service owns that.
    """
    event_id: Optional[int] = None
    selected_seats: List[SelectedSeat] = Field(default_factory=list)
    names: Dict[str, PassengerName] = Field(default_factory=dict)
    stage: SessionStage = SessionStage.EMPTY
    last_lock: Optional[LockOutcome] = None
    sale: Optional[SaleOutcome] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_empty(self) -> bool:
        return self.stage == SessionStage.EMPTY

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)


class SelectSeatsRequest(BaseModel):
    """Schema for replacing the seat selection."""
    seats: List[SelectedSeat] = Field(..., description="Seats to select, replaces the current selection")


class SetNamesRequest(BaseModel):
    """Schema for attaching passenger names, keyed by ``row-column``."""
    names: Dict[str, PassengerName] = Field(..., description="Passenger names keyed by row-column")
