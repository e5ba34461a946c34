"""Tests for the SQLAlchemy event catalog."""

from datetime import datetime, timedelta, timezone

import pytest_asyncio

from ticket_sales_platform.database import create_database_engine, create_session_factory
from ticket_sales_platform.models import Base, Event
from ticket_sales_platform.services.event_catalog import SqlAlchemyEventCatalog

NOW = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Catalog database in a temporary SQLite file"""
    engine = create_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = create_session_factory(engine)
    async with factory() as session:
        session.add_all([
            Event(title="Later", catalog_event_id=30, event_date=NOW + timedelta(days=10)),
            Event(title="Past", catalog_event_id=10, event_date=NOW - timedelta(days=1)),
            Event(title="Soon", catalog_event_id=20, event_date=NOW + timedelta(hours=2),
                  row_count=10, column_count=12),
            Event(title="Cancelled", catalog_event_id=40, event_date=NOW + timedelta(days=3),
                  is_cancelled=True),
            Event(title="Uncatalogued", catalog_event_id=None, event_date=NOW + timedelta(days=5)),
        ])
        await session.commit()

    yield factory
    await engine.dispose()


class TestSqlAlchemyEventCatalog:
    """Active event snapshots and lookups"""

    async def test_active_events_are_future_and_not_cancelled(self, session_factory):
        events = await SqlAlchemyEventCatalog(session_factory).list_active_events(now=NOW)

        assert [event.title for event in events] == ["Soon", "Uncatalogued", "Later"]
        assert [event.catalog_event_id for event in events] == [20, None, 30]

    async def test_snapshot_carries_dimensions(self, session_factory):
        events = await SqlAlchemyEventCatalog(session_factory).list_active_events(now=NOW)

        soon = events[0]
        assert (soon.row_count, soon.column_count) == (10, 12)
        assert events[1].row_count is None

    async def test_get_event(self, session_factory):
        catalog = SqlAlchemyEventCatalog(session_factory)
        events = await catalog.list_active_events(now=NOW)

        found = await catalog.get_event(events[0].event_id)

        assert found == events[0]
        assert await catalog.get_event(9999) is None
