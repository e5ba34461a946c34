"""FastAPI application setup and configuration."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticket_sales_platform.config import settings
from ticket_sales_platform.api import api_router
from ticket_sales_platform.cache import init_cache, close_cache
from ticket_sales_platform.database import init_database, close_database, get_session_factory
from ticket_sales_platform.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from ticket_sales_platform.services import (
    BookingCoordinator,
    HttpInventoryGateway,
    SqlAlchemyEventCatalog,
    WarmupCoordinator,
    create_session_store,
)
from ticket_sales_platform.tasks.warmup_tasks import summarize_report
from ticket_sales_platform.utils.circuit_breaker import _registry
from ticket_sales_platform.utils.logging_config import setup_logging

# Set up logging
setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file=settings.log_file or ("logs/ticket_sales.log" if settings.environment == "production" else None),
    enable_json_logging=settings.enable_json_logging or settings.environment == "production",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared services at startup and release them at shutdown."""
    logger.info("Starting Ticket Sales Platform")
    await init_database()

    if settings.session_backend == "redis":
        await init_cache()

    gateway = HttpInventoryGateway()
    catalog = SqlAlchemyEventCatalog(get_session_factory())
    app.state.inventory_gateway = gateway
    app.state.booking_coordinator = BookingCoordinator(gateway, create_session_store(), catalog)
    app.state.warmup_task = None

    if settings.warmup_enabled:
        app.state.warmup_task = WarmupCoordinator(gateway, catalog).schedule()
        logger.info("Inventory warm-up scheduled in %.1fs", settings.warmup_start_delay_seconds)

    yield

    logger.info("Shutting down Ticket Sales Platform")
    warmup_task = app.state.warmup_task
    if warmup_task is not None and not warmup_task.done():
        warmup_task.cancel()
        try:
            await warmup_task
        except asyncio.CancelledError:
            logger.info("Inventory warm-up cancelled")

    await gateway.close()
    if settings.session_backend == "redis":
        await close_cache()
    await close_database()


app = FastAPI(
    title="Ticket Sales Platform API",
    description="""
    ## Ticket Sales Platform

    Seat reservation for scheduled events, backed by an external seat
    inventory service that owns seat state.

    ### Purchase flow

    1. `PUT /api/v1/session/event/{event_id}` select an event
    2. `GET /api/v1/seats/{event_id}/map` look at the seat map
    3. `PUT /api/v1/session/seats` pick up to 4 seats
    4. `POST /api/v1/seats/lock` lock them in the inventory service
    5. `PUT /api/v1/session/names` name the person on each seat (`B-3`)
    6. `POST /api/v1/sales/confirm` confirm the sale
    7. `DELETE /api/v1/session` start over

    ### Authentication

    Every session endpoint needs `Authorization: Bearer <token>`. The token's
    `sub` claim identifies the session owner.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "session", "description": "Per-user booking session"},
        {"name": "seats", "description": "Seat maps and seat locking"},
        {"name": "sales", "description": "Sale confirmation"},
        {"name": "warmup", "description": "Inventory warm-up"},
        {"name": "health", "description": "System health and monitoring endpoints"},
    ],
    lifespan=lifespan,
)

# Last added runs first: CORS, then request logging, then error rendering
app.add_middleware(
    ErrorHandlerMiddleware,
    debug=settings.debug
)

if settings.enable_request_logging:
    app.add_middleware(LoggingMiddleware)

if settings.debug:
    cors_origins = ["*"]
    cors_allow_credentials = False  # Cannot use credentials with wildcard origins
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Basic information about the API."""
    return {
        "message": "Ticket Sales Platform API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Liveness check for uptime monitoring."""
    return {"status": "healthy", "service": "ticket-sales-platform"}


@app.get("/metrics", tags=["health"])
async def get_metrics():
    """
    Circuit breaker statistics and the state of the startup warm-up.
    """
    warmup_task = getattr(app.state, "warmup_task", None)
    if warmup_task is None:
        warmup = {"status": "disabled"}
    elif not warmup_task.done():
        warmup = {"status": "running"}
    elif warmup_task.cancelled():
        warmup = {"status": "cancelled"}
    else:
        report = warmup_task.result()
        warmup = {"status": "completed", **summarize_report(report)} if report else {"status": "failed"}

    return {
        "circuit_breakers": _registry.get_all_stats(),
        "warmup": warmup,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
