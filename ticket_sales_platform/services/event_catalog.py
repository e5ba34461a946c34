"""
Read-only view of the event catalog used by the seat sales core.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventSnapshot:
    """Immutable copy of the catalog fields the core reads."""
    event_id: int
    catalog_event_id: Optional[int]
    row_count: Optional[int] = None
    column_count: Optional[int] = None
    title: str = ""

    @classmethod
    def from_model(cls, event: Event) -> "EventSnapshot":
        return cls(
            event_id=event.id,
            catalog_event_id=event.catalog_event_id,
            row_count=event.row_count,
            column_count=event.column_count,
            title=event.title,
        )


class EventCatalog(Protocol):
    """Catalog queries needed by warm-up and booking."""

    async def list_active_events(self) -> List[EventSnapshot]:
        ...

    async def get_event(self, event_id: int) -> Optional[EventSnapshot]:
        ...


class SqlAlchemyEventCatalog:
    """``EventCatalog`` reading the ``events`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_active_events(self, now: Optional[datetime] = None) -> List[EventSnapshot]:
        """
        Snapshot every event that is not cancelled and has not started yet.

        Args:
            now: Reference instant, defaults to the current UTC time

        Returns:
            Active events ordered by date, then id
        """
        now = now or datetime.now(timezone.utc)
        async with self.session_factory() as session:
            result = await session.execute(
                select(Event)
                .where(Event.is_cancelled.is_(False), Event.event_date > now)
                .order_by(Event.event_date, Event.id)
            )
            events = [EventSnapshot.from_model(event) for event in result.scalars().all()]

        logger.debug("Found %d active events", len(events))
        return events

    async def get_event(self, event_id: int) -> Optional[EventSnapshot]:
        """Look up a single event by its local id."""
        async with self.session_factory() as session:
            event = await session.get(Event, event_id)
            return EventSnapshot.from_model(event) if event else None
