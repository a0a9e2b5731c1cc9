"""SQLAlchemy model for book reservations."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from shelfnote.infrastructure.database import Base
from shelfnote.utils import now_utc

RESERVATION_STATUS_PENDING = "pending"
RESERVATION_STATUS_NOTIFIED = "notified"
RESERVATION_STATUS_FULFILLED = "fulfilled"
RESERVATION_STATUS_CANCELLED = "cancelled"


class ReservationModel(Base):
    """A user's place in the queue for a book."""

    __tablename__ = "reservations"

    id = Column(Uuid, primary_key=True)
    user_id = Column(Uuid, nullable=False, index=True)
    book_id = Column(Uuid, ForeignKey("books.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=RESERVATION_STATUS_PENDING)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    notified_at = Column(DateTime(timezone=True), nullable=True)


__all__ = [
    "ReservationModel",
    "RESERVATION_STATUS_PENDING",
    "RESERVATION_STATUS_NOTIFIED",
    "RESERVATION_STATUS_FULFILLED",
    "RESERVATION_STATUS_CANCELLED",
]
