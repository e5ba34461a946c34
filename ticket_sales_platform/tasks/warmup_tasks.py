"""
Celery tasks for inventory warm-up.
"""

import asyncio
import logging
from typing import Any, Dict

from .celery_app import celery_app
from ..database import create_database_engine, create_session_factory
from ..services.event_catalog import SqlAlchemyEventCatalog
from ..services.inventory_gateway import HttpInventoryGateway
from ..services.warmup_service import WarmupCoordinator, WarmupReport

logger = logging.getLogger(__name__)


def summarize_report(report: WarmupReport) -> Dict[str, Any]:
    """JSON-serializable summary of a warm-up run."""
    return {
        "succeeded": report.succeeded,
        "failed": report.failed,
        "started_at": report.started_at.isoformat(),
        "finished_at": report.finished_at.isoformat() if report.finished_at else None,
        "events": [
            {
                "event_id": result.event_id,
                "catalog_event_id": result.catalog_event_id,
                "succeeded": result.succeeded,
                "attempts": result.attempts,
                "seat": list(result.seat) if result.seat else None,
                "reason": result.reason,
            }
            for result in report.results
        ],
    }


async def run_warmup() -> Dict[str, Any]:
    """Run one warm-up with resources owned by the worker for the duration."""
    engine = create_database_engine()
    gateway = HttpInventoryGateway()
    try:
        coordinator = WarmupCoordinator(gateway, SqlAlchemyEventCatalog(create_session_factory(engine)))
        report = await coordinator.run()
    finally:
        await gateway.close()
        await engine.dispose()

    if report is None:
        return {"succeeded": 0, "failed": 0, "error": "active events could not be read"}
    return summarize_report(report)


@celery_app.task(bind=True, name="warmup_inventory_task")
def warmup_inventory_task(self):
    """
    Warm up the inventory service for every active event.

    Same algorithm as the startup warm-up, triggered on demand through
    ``POST /api/v1/warmup``.
    """
    logger.info("Starting warm-up task %s", self.request.id)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(run_warmup())
    finally:
        loop.close()
