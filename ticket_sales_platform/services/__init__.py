"""Business logic services for the Ticket Sales Platform."""

from .inventory_gateway import HttpInventoryGateway, InventoryGateway
from .session_store import InMemorySessionStore, RedisSessionStore, SessionStore, create_session_store
from .event_catalog import EventCatalog, EventSnapshot, SqlAlchemyEventCatalog
from .warmup_service import EventWarmupResult, WarmupCoordinator, WarmupReport
from .booking_service import BookingCoordinator

__all__ = [
    "InventoryGateway",
    "HttpInventoryGateway",
    "SessionStore",
    "InMemorySessionStore",
    "RedisSessionStore",
    "create_session_store",
    "EventCatalog",
    "EventSnapshot",
    "SqlAlchemyEventCatalog",
    "WarmupCoordinator",
    "WarmupReport",
    "EventWarmupResult",
    "BookingCoordinator",
]
