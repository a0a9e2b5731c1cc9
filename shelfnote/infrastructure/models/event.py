"""SQLAlchemy model for the append-only event log."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, String, Text, Uuid

from shelfnote.infrastructure.database import Base
from shelfnote.utils import now_utc


class EventModel(Base):
    """Database representation of a published notification event."""

    __tablename__ = "events"

    event_id = Column(Uuid, primary_key=True)
    type = Column(String(40), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    object_kind = Column(String(20), nullable=True)
    object_id = Column(Uuid, nullable=True)
    object_title = Column(String(255), nullable=True)
    # ``metadata`` is reserved on declarative classes.
    event_metadata = Column("metadata", JSON, nullable=True)
    is_broadcast = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)


Index(
    "ix_events_created_at_event_id",
    EventModel.created_at.desc(),
    EventModel.event_id.desc(),
)
Index("ix_events_broadcast_created_at", EventModel.is_broadcast, EventModel.created_at)


__all__ = ["EventModel"]
