"""
Pydantic schemas for the inventory service contract and its outcomes.

Wire models carry the inventory service's field names as aliases; the rest of
the platform only sees the English attribute names.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Free-text markers the inventory service puts in ``mensaje``. Kept verbatim
# until the service exposes a structured failure code.
TRANSPORT_MESSAGE_MARKERS = (
    "I/O error",
    "Connection refused",
    "connect timed out",
    "No route to host",
)
UNAVAILABLE_MESSAGE_MARKERS = (
    "no disponible",
    "ocupado",
    "bloqueado",
)


class SeatState(str, Enum):
    """Seat occupancy as reported by the inventory service."""
    FREE = "FREE"
    SELECTED = "SELECTED"
    LOCKED = "LOCKED"
    SOLD = "SOLD"


_REMOTE_STATES = {
    "LIBRE": SeatState.FREE,
    "BLOQUEADO": SeatState.LOCKED,
    "OCUPADO": SeatState.SOLD,
    "VENDIDO": SeatState.SOLD,
}


class LockFailureKind(str, Enum):
    """Structured classification of a lock attempt."""
    NONE = "NONE"
    SEAT_UNAVAILABLE = "SEAT_UNAVAILABLE"
    TRANSPORT = "TRANSPORT"
    REJECTED = "REJECTED"


class SaleResult(str, Enum):
    """Outcome of a sale confirmation."""
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


def is_transport_message(message: Optional[str]) -> bool:
    """Check whether a remote message describes an unreachable service."""
    return bool(message) and any(marker in message for marker in TRANSPORT_MESSAGE_MARKERS)


def is_unavailable_message(message: Optional[str]) -> bool:
    """Check whether a remote message describes an occupied or locked seat."""
    return bool(message) and any(marker in message for marker in UNAVAILABLE_MESSAGE_MARKERS)


class Seat(BaseModel):
    """A seat of a seat map."""
    model_config = ConfigDict(populate_by_name=True)

    row: Optional[str] = Field(None, alias="fila")
    column: Optional[int] = Field(None, alias="numero")
    state: SeatState = SeatState.FREE

    @property
    def is_free(self) -> bool:
        return self.state == SeatState.FREE


class SeatMap(BaseModel):
    """Seat map of one event. An empty seat list means the inventory is cold."""
    event_id: int
    seats: List[Seat] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.seats

    def free_seats(self) -> List[Seat]:
        """Free seats with usable coordinates, in map order."""
        return [
            seat for seat in self.seats
            if seat.is_free and seat.row is not None and seat.column is not None
        ]


class RemoteSeat(BaseModel):
    """Seat entry as returned by ``GET /api/asientos/evento/{id}``."""
    model_config = ConfigDict(populate_by_name=True)

    row: Optional[str] = Field(None, alias="fila")
    number: Optional[int] = Field(None, alias="numero")
    state: Optional[str] = Field(None, alias="estado")
    selected: bool = Field(False, alias="seleccionado")

    @field_validator("row", mode="before")
    @classmethod
    def _row_as_text(cls, value):
        return None if value is None else str(value)

    def to_seat(self) -> Seat:
        state = _REMOTE_STATES.get((self.state or "").upper(), SeatState.LOCKED)
        if state == SeatState.FREE and self.selected:
            state = SeatState.SELECTED
        return Seat(row=self.row, column=self.number, state=state)


class RemoteSeatMap(BaseModel):
    """Body of the seat map response."""
    model_config = ConfigDict(populate_by_name=True)

    event_id: Optional[int] = Field(None, alias="eventoId")
    seats: Optional[List[RemoteSeat]] = Field(None, alias="asientos")


class SeatCoordinate(BaseModel):
    """Integer seat address used by lock and sale requests."""
    model_config = ConfigDict(populate_by_name=True)

    row: int = Field(..., alias="fila")
    column: int = Field(..., alias="columna")


class LockRequest(BaseModel):
    """Body of ``POST /api/asientos/bloquear``."""
    model_config = ConfigDict(populate_by_name=True)

    event_id: int = Field(..., alias="eventoId")
    seats: List[SeatCoordinate] = Field(..., alias="asientos")


class LockedSeat(BaseModel):
    """Seat echoed back by a lock response."""
    model_config = ConfigDict(populate_by_name=True)

    row: Optional[str] = Field(None, alias="fila")
    number: Optional[int] = Field(None, alias="numero")

    @field_validator("row", mode="before")
    @classmethod
    def _row_as_text(cls, value):
        return None if value is None else str(value)


class LockOutcome(BaseModel):
    """Result of a lock attempt, returned to callers verbatim."""
    model_config = ConfigDict(populate_by_name=True)

    succeeded: bool = Field(False, alias="exitoso")
    message: Optional[str] = Field(None, alias="mensaje")
    locked_seats: List[LockedSeat] = Field(default_factory=list, alias="asientosBloqueados")
    unavailable_seats: List[LockedSeat] = Field(default_factory=list, alias="asientosNoDisponibles")

    @field_validator("succeeded", mode="before")
    @classmethod
    def _null_is_false(cls, value):
        return False if value is None else value

    @field_validator("locked_seats", "unavailable_seats", mode="before")
    @classmethod
    def _null_is_empty(cls, value):
        return value or []

    @property
    def failure_kind(self) -> LockFailureKind:
        if self.succeeded:
            return LockFailureKind.NONE
        if is_transport_message(self.message):
            return LockFailureKind.TRANSPORT
        if self.unavailable_seats or is_unavailable_message(self.message):
            return LockFailureKind.SEAT_UNAVAILABLE
        return LockFailureKind.REJECTED


class SaleSeat(BaseModel):
    """Seat entry of a sale confirmation request."""
    model_config = ConfigDict(populate_by_name=True)

    row: int = Field(..., alias="fila")
    column: int = Field(..., alias="columna")
    first_name: str = Field(..., alias="nombrePersona")
    last_name: str = Field(..., alias="apellidoPersona")


class SaleRequest(BaseModel):
    """Body of ``POST /api/ventas/confirmar``."""
    model_config = ConfigDict(populate_by_name=True)

    event_id: int = Field(..., alias="eventoId")
    seats: List[SaleSeat] = Field(..., alias="asientos")


class RemoteSaleResponse(BaseModel):
    """Body of the sale confirmation response."""
    model_config = ConfigDict(populate_by_name=True)

    result: Optional[str] = Field(None, alias="resultado")
    message: Optional[str] = Field(None, alias="mensaje")
    remote_sale_id: Optional[int] = Field(None, alias="ventaIdCatedra")

    def to_outcome(self) -> "SaleOutcome":
        result = SaleResult.SUCCESS if self.result == "EXITOSA" else SaleResult.FAILURE
        return SaleOutcome(result=result, message=self.message, remote_sale_id=self.remote_sale_id)


class SaleOutcome(BaseModel):
    """Result of confirming a sale."""
    result: SaleResult
    message: Optional[str] = None
    remote_sale_id: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.result == SaleResult.SUCCESS
