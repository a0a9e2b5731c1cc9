"""ORM models used by the application infrastructure."""

from .book import BookModel
from .borrow import BorrowModel
from .event import EventModel
from .recipient_status import RecipientStatusModel
from .reservation import (
    RESERVATION_STATUS_CANCELLED,
    RESERVATION_STATUS_FULFILLED,
    RESERVATION_STATUS_NOTIFIED,
    RESERVATION_STATUS_PENDING,
    ReservationModel,
)
from .user import UserModel

__all__ = [
    "BookModel",
    "BorrowModel",
    "EventModel",
    "RecipientStatusModel",
    "ReservationModel",
    "RESERVATION_STATUS_PENDING",
    "RESERVATION_STATUS_NOTIFIED",
    "RESERVATION_STATUS_FULFILLED",
    "RESERVATION_STATUS_CANCELLED",
    "UserModel",
]
