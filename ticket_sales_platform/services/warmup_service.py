"""
Startup warm-up of the inventory service's seat maps.

The inventory service builds its seat map for an event lazily, on the first
lock it receives. Before users arrive, this service locks one seat of every
active event so each map is materialized. One successful lock per event is
enough; the goal is priming, not reservation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from ..config import get_settings
from ..schemas.inventory import LockFailureKind, SeatCoordinate
from ..utils.exceptions import InventoryServiceError, TransportUnavailableError
from ..utils.logging_config import log_business_event
from ..utils.seat_codec import iter_candidate_seats, row_to_integer
from .event_catalog import EventCatalog, EventSnapshot
from .inventory_gateway import InventoryGateway

logger = logging.getLogger(__name__)


@dataclass
class EventWarmupResult:
    """What happened while warming one event."""
    event_id: int
    catalog_event_id: Optional[int]
    succeeded: bool = False
    attempts: int = 0
    seat: Optional[Tuple[int, int]] = None
    reason: Optional[str] = None


@dataclass
class WarmupReport:
    """Summary of a whole warm-up run."""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    results: List[EventWarmupResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.succeeded)


class WarmupCoordinator:
    """Primes the inventory service for every active event, one event at a time."""

    def __init__(
        self,
        gateway: InventoryGateway,
        catalog: EventCatalog,
        default_rows: Optional[int] = None,
        default_columns: Optional[int] = None,
        start_delay: Optional[float] = None,
    ):
        settings = get_settings()
        self.gateway = gateway
        self.catalog = catalog
        self.default_rows = default_rows or settings.warmup_default_rows
        self.default_columns = default_columns or settings.warmup_default_columns
        self.start_delay = start_delay if start_delay is not None else settings.warmup_start_delay_seconds

    def schedule(self, delay: Optional[float] = None) -> "asyncio.Task[Optional[WarmupReport]]":
        """
        Start the warm-up in the background and return immediately.

        The task waits ``delay`` seconds (default: the configured start delay)
        so the inventory transport has time to come up, then runs once.
        """
        return asyncio.create_task(self._delayed_run(self.start_delay if delay is None else delay))

    async def _delayed_run(self, delay: float) -> Optional[WarmupReport]:
        if delay > 0:
            logger.debug("Warm-up starts in %.1fs", delay)
            await asyncio.sleep(delay)
        return await self.run()

    async def run(self) -> Optional[WarmupReport]:
        """
        Warm every active event and return the report.

        Never raises: any failure is logged and the run ends with whatever was
        collected so far (``None`` if the event list could not be read).
        """
        logger.info("Starting inventory warm-up...")
        report = WarmupReport()

        try:
            events = await self.catalog.list_active_events()
            logger.info("Found %d active events to warm up", len(events))

            for event in events:
                report.results.append(await self._warm_event_safely(event))

        except Exception:
            logger.exception("Inventory warm-up aborted")
            if not report.results:
                return None

        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Inventory warm-up completed. Succeeded: %d, Failed: %d",
            report.succeeded, report.failed
        )
        log_business_event(
            "inventory_warmup_completed",
            {"succeeded": report.succeeded, "failed": report.failed},
        )
        return report

    async def _warm_event_safely(self, event: EventSnapshot) -> EventWarmupResult:
        try:
            return await self.warm_event(event)
        except Exception as e:
            logger.exception("Error warming up event %s", event.event_id)
            return EventWarmupResult(
                event_id=event.event_id,
                catalog_event_id=event.catalog_event_id,
                reason=f"error: {e}",
            )

    async def warm_event(self, event: EventSnapshot) -> EventWarmupResult:
        """Lock one seat of ``event`` in the inventory service, trying until one sticks."""
        result = EventWarmupResult(event_id=event.event_id, catalog_event_id=event.catalog_event_id)

        catalog_id = event.catalog_event_id
        if catalog_id is None:
            logger.warning("Event %s has no catalog event id, skipping", event.event_id)
            result.reason = "missing catalog event id"
            return result

        try:
            seat_map = await self.gateway.fetch_seat_map(catalog_id)
        except TransportUnavailableError as e:
            logger.warning("Seat map for catalog event %s unavailable (%s), probing", catalog_id, e.message)
            candidates = self._probe_candidates(event)
        except InventoryServiceError as e:
            logger.warning("Could not fetch seat map for catalog event %s: %s", catalog_id, e.message)
            result.reason = f"seat map fetch failed: {e.message}"
            return result
        else:
            if seat_map.is_empty:
                logger.info("Seat map for catalog event %s is empty (cold inventory), probing", catalog_id)
                candidates = self._probe_candidates(event)
            else:
                candidates = self._free_seat_candidates(seat_map.free_seats(), catalog_id)

        for row, column in candidates:
            result.attempts += 1
            if await self._try_lock(catalog_id, row, column):
                result.succeeded = True
                result.seat = (row, column)
                logger.info(
                    "Warm-up succeeded for catalog event %s with seat (row %d, column %d) after %d attempts",
                    catalog_id, row, column, result.attempts
                )
                return result

        result.reason = f"no seat could be locked after {result.attempts} attempts"
        logger.warning(
            "Could not warm up catalog event %s after %d attempts "
            "(seats may be taken or the inventory service may be down)",
            catalog_id, result.attempts
        )
        return result

    def _probe_candidates(self, event: EventSnapshot) -> Iterable[Tuple[int, int]]:
        rows = event.row_count if event.row_count and event.row_count > 0 else self.default_rows
        columns = event.column_count if event.column_count and event.column_count > 0 else self.default_columns
        logger.debug(
            "Probing %d rows x %d columns for catalog event %s",
            rows, columns, event.catalog_event_id
        )
        return iter_candidate_seats(rows, columns)

    @staticmethod
    def _free_seat_candidates(seats, catalog_id: int) -> Iterable[Tuple[int, int]]:
        for seat in seats:
            row = row_to_integer(seat.row)
            if row is None:
                logger.warning("Skipping seat with undecodable row %r in catalog event %s", seat.row, catalog_id)
                continue
            yield row, seat.column

    async def _try_lock(self, catalog_id: int, row: int, column: int) -> bool:
        """One lock attempt. Any failure just means: try the next seat."""
        try:
            outcome = await self.gateway.lock_seats(catalog_id, [SeatCoordinate(row=row, column=column)])
        except TransportUnavailableError as e:
            logger.warning(
                "Inventory unavailable while warming catalog event %s at (%d, %d): %s",
                catalog_id, row, column, e.message
            )
            return False
        except InventoryServiceError as e:
            logger.debug("Lock refused for catalog event %s at (%d, %d): %s", catalog_id, row, column, e.message)
            return False

        kind = outcome.failure_kind
        if kind == LockFailureKind.NONE:
            return True
        if kind == LockFailureKind.TRANSPORT:
            logger.warning(
                "Inventory unavailable while warming catalog event %s at (%d, %d): %s",
                catalog_id, row, column, outcome.message
            )
        elif kind == LockFailureKind.SEAT_UNAVAILABLE:
            logger.debug("Seat (%d, %d) of catalog event %s not available", row, column, catalog_id)
        else:
            logger.debug(
                "Lock refused for catalog event %s at (%d, %d): %s",
                catalog_id, row, column, outcome.message
            )
        return False
