"""
Event model as seen by the seat sales core.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Event(Base):
    """Scheduled event whose seats are sold through the inventory service."""

    __tablename__ = "events"

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # Identity of the event inside the inventory service, may differ from id
    catalog_event_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
        index=True
    )

    event_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True
    )

    # Venue dimensions, used as warm-up search bounds when known
    row_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    column_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_cancelled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        CheckConstraint("row_count IS NULL OR row_count >= 0", name="ck_events_row_count_non_negative"),
        CheckConstraint("column_count IS NULL OR column_count >= 0", name="ck_events_column_count_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title='{self.title}', "
            f"catalog_event_id={self.catalog_event_id}, date={self.event_date})>"
        )
