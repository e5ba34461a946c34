"""API endpoints for the Ticket Sales Platform."""

from fastapi import APIRouter
from .session import router as session_router
from .seats import router as seats_router
from .sales import router as sales_router
from .warmup import router as warmup_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(session_router)
api_router.include_router(seats_router)
api_router.include_router(sales_router)
api_router.include_router(warmup_router)

__all__ = ["api_router"]
