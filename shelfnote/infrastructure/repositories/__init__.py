"""Repository implementations for infrastructure layer."""

from .borrow_repository import BorrowRepository
from .event_repository import EventRepository
from .recipient_status_repository import RecipientStatusRepository
from .reservation_repository import ReservationRepository
from .user_repository import UserRepository

__all__ = [
    "BorrowRepository",
    "EventRepository",
    "RecipientStatusRepository",
    "ReservationRepository",
    "UserRepository",
]
