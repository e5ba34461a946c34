"""
Database models for the ticket sales platform.
"""

from .base import Base
from .event import Event

__all__ = [
    "Base",
    "Event",
]
