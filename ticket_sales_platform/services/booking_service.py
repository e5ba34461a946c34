"""
Booking coordinator driving a user's purchase flow against the inventory service.

Flow per principal:

    EMPTY -> EVENT_SET -> SEATS_SELECTED -> SEATS_LOCKED -> NAMES_SET
          -> SALE_CONFIRMED -> EMPTY (clear)

The session only records intent. Whether a seat is really held is decided by
the inventory service, so lock failures never clear the session and a sale is
never retried automatically.
"""

import logging
from typing import Dict, List, Optional

from ..config import get_settings
from ..schemas.inventory import LockOutcome, SaleOutcome, SaleSeat, SeatCoordinate
from ..schemas.session import BookingSession, PassengerName, SelectedSeat, SessionStage
from ..utils.exceptions import EventNotFoundError, SessionStateError, ValidationError
from ..utils.logging_config import log_business_event
from ..utils.seat_codec import require_row_integer
from .event_catalog import EventCatalog
from .inventory_gateway import InventoryGateway
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class BookingCoordinator:
    """Coordinates seat selection, locking and sale confirmation for each principal."""

    def __init__(
        self,
        gateway: InventoryGateway,
        store: SessionStore,
        catalog: EventCatalog,
        max_seats: Optional[int] = None,
    ):
        self.gateway = gateway
        self.store = store
        self.catalog = catalog
        self.max_seats = max_seats or get_settings().max_seats_per_selection

    async def get_session_state(self, principal_id: str) -> BookingSession:
        """Return the principal's current session."""
        return await self.store.load(principal_id)

    async def set_event(self, principal_id: str, event_id: int) -> BookingSession:
        """
        Point the session at an event.

        Always legal. Any previous selection and names belong to the old event
        and are dropped.
        """
        async with self.store.edit(principal_id) as session:
            if session.event_id is not None and session.event_id != event_id:
                logger.info(
                    "Principal %s switched from event %s to %s, dropping %d selected seats",
                    principal_id, session.event_id, event_id, len(session.selected_seats)
                )
            session.event_id = event_id
            session.selected_seats = []
            session.names = {}
            session.last_lock = None
            session.sale = None
            session.stage = SessionStage.EVENT_SET
        return session

    async def select_seats(self, principal_id: str, seats: List[SelectedSeat]) -> BookingSession:
        """
        Replace the selected seats. Does not contact the inventory service.

        Raises:
            SessionStateError: If no event is set or the sale is already confirmed
            InvalidRowEncodingError: If a row is neither A-Z nor a number
            ValidationError: If seats repeat, columns are not positive or too many are picked
        """
        self._validate_selection(seats)

        async with self.store.edit(principal_id) as session:
            if session.event_id is None:
                raise SessionStateError("select seats", session.stage.value, "no event selected")
            self._require_not_confirmed(session, "select seats")

            names: Dict[str, PassengerName] = {}
            selection: List[SelectedSeat] = []
            for seat in seats:
                name = session.names.get(seat.key)
                if seat.has_name:
                    name = PassengerName(first_name=seat.first_name, last_name=seat.last_name)
                if name is not None:
                    names[seat.key] = name
                selection.append(self._with_name(seat, name))

            session.selected_seats = selection
            session.names = names
            session.last_lock = None
            session.sale = None
            session.stage = SessionStage.SEATS_SELECTED if selection else SessionStage.EVENT_SET
        return session

    async def lock_seats(self, principal_id: str) -> LockOutcome:
        """
        Lock exactly the selected seats in the inventory service.

        The outcome is returned as-is. A failed or partial lock keeps the
        session re-selectable; it may be retried any number of times.

        Raises:
            SessionStateError: If nothing is selected or the sale is already confirmed
            InventoryServiceError: If the inventory service fails (session unchanged)
        """
        async with self.store.edit(principal_id) as session:
            self._require_selection(session, "lock seats")
            self._require_not_confirmed(session, "lock seats")

            coordinates = [
                SeatCoordinate(row=require_row_integer(seat.row), column=seat.column)
                for seat in session.selected_seats
            ]
            outcome = await self.gateway.lock_seats(session.event_id, coordinates)

            session.last_lock = outcome
            session.sale = None
            if outcome.succeeded:
                session.stage = SessionStage.SEATS_LOCKED
            else:
                session.stage = SessionStage.SEATS_SELECTED
                logger.info(
                    "Lock for principal %s on event %s not granted (%s): %s",
                    principal_id, session.event_id, outcome.failure_kind.value, outcome.message
                )
        return outcome

    async def set_names(self, principal_id: str, names_by_key: Dict[str, PassengerName]) -> BookingSession:
        """
        Attach passenger names to selected seats, keyed by ``row-column``.

        Keys that do not match a selected seat are ignored.
        """
        async with self.store.edit(principal_id) as session:
            self._require_selection(session, "set names")
            self._require_not_confirmed(session, "set names")

            selected = {seat.key: index for index, seat in enumerate(session.selected_seats)}
            ignored = [key for key in names_by_key if key.strip().upper() not in selected]
            if ignored:
                logger.debug("Ignoring names for unselected seats %s", ignored)

            for key, name in names_by_key.items():
                key = key.strip().upper()
                index = selected.get(key)
                if index is None:
                    continue
                session.names[key] = name
                session.selected_seats[index] = self._with_name(session.selected_seats[index], name)

            if session.stage in (SessionStage.SEATS_LOCKED, SessionStage.NAMES_SET):
                session.stage = SessionStage.NAMES_SET
        return session

    async def confirm_sale(self, principal_id: str) -> SaleOutcome:
        """
        Confirm the sale of the named seats with the inventory service.

        Called exactly once per request: a sale is never retried. The session
        is not cleared here, callers clear it once they are done with it.

        Raises:
            SessionStateError: If the session is incomplete or already confirmed
            EventNotFoundError: If the session's event is not in the catalog
            InventoryServiceError: If the inventory service fails
        """
        async with self.store.edit(principal_id) as session:
            self._require_selection(session, "confirm sale")
            self._require_not_confirmed(session, "confirm sale")

            unnamed = [seat.key for seat in session.selected_seats if not seat.has_name]
            if unnamed:
                raise SessionStateError(
                    "confirm sale", session.stage.value, f"missing passenger names for {', '.join(unnamed)}"
                )

            catalog_event_id = await self._resolve_catalog_id(session.event_id)
            sale_seats = [
                SaleSeat(
                    row=require_row_integer(seat.row),
                    column=seat.column,
                    first_name=seat.first_name,
                    last_name=seat.last_name,
                )
                for seat in session.selected_seats
            ]

            outcome = await self.gateway.confirm_sale(catalog_event_id, sale_seats)

            if outcome.succeeded:
                session.stage = SessionStage.SALE_CONFIRMED
                session.sale = outcome
                log_business_event(
                    "sale_confirmed",
                    {
                        "event_id": session.event_id,
                        "catalog_event_id": catalog_event_id,
                        "seat_count": len(sale_seats),
                        "remote_sale_id": outcome.remote_sale_id,
                    },
                    user_id=principal_id,
                )
            else:
                logger.warning(
                    "Sale for principal %s on catalog event %s failed: %s",
                    principal_id, catalog_event_id, outcome.message
                )
        return outcome

    async def clear(self, principal_id: str) -> None:
        """Reset the session to EMPTY. Safe to call any number of times."""
        await self.store.reset(principal_id)

    def _validate_selection(self, seats: List[SelectedSeat]) -> None:
        if len(seats) > self.max_seats:
            raise ValidationError(
                f"At most {self.max_seats} seats can be selected, got {len(seats)}",
                field_errors={"seats": [f"maximum is {self.max_seats}"]},
            )

        # "B", "b" and "2" all address row 2
        seen = set()
        for seat in seats:
            coordinate = (require_row_integer(seat.row), seat.column)
            if seat.column < 1:
                raise ValidationError(
                    f"Seat column must be positive, got {seat.column}",
                    field_errors={"column": ["must be greater than 0"]},
                )
            if coordinate in seen:
                raise ValidationError(
                    f"Seat {seat.key} selected twice",
                    field_errors={"seats": [f"duplicate seat {seat.key}"]},
                )
            seen.add(coordinate)

    @staticmethod
    def _require_selection(session: BookingSession, operation: str) -> None:
        if session.event_id is None:
            raise SessionStateError(operation, session.stage.value, "no event selected")
        if not session.selected_seats:
            raise SessionStateError(operation, session.stage.value, "no seats selected")

    @staticmethod
    def _require_not_confirmed(session: BookingSession, operation: str) -> None:
        if session.stage == SessionStage.SALE_CONFIRMED:
            raise SessionStateError(
                operation, session.stage.value, "sale already confirmed, clear the session first"
            )

    @staticmethod
    def _with_name(seat: SelectedSeat, name: Optional[PassengerName]) -> SelectedSeat:
        return SelectedSeat(
            row=seat.row.strip().upper(),
            column=seat.column,
            first_name=name.first_name if name else None,
            last_name=name.last_name if name else None,
        )

    async def _resolve_catalog_id(self, event_id: int) -> int:
        event = await self.catalog.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        if event.catalog_event_id is None:
            logger.warning("Event %s has no catalog event id, using its local id", event_id)
            return event_id
        return event.catalog_event_id
