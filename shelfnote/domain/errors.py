"""Error taxonomy shared by the publisher, reader and fan-out dispatcher."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID


class NotificationError(Exception):
    """Base class for every error surfaced by the notification core.

    ``kind`` is the stable name used on the wire and in fan-out reports,
    ``status_code`` the HTTP status the API maps it to and ``transient`` tells
    callers whether retrying the same operation may succeed.
    """

    kind = "NotificationError"
    status_code = 500
    transient = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind


class NotificationValidationError(NotificationError, ValueError):
    """Caller-supplied data was rejected."""

    kind = "ValidationError"
    status_code = 400


class UnknownUserError(NotificationError):
    """One or more audience members do not exist in the user store."""

    kind = "UnknownUser"
    status_code = 400

    def __init__(self, user_ids: Iterable[UUID]) -> None:
        self.user_ids = sorted(set(user_ids), key=str)
        listed = ", ".join(str(user_id) for user_id in self.user_ids)
        super().__init__(f"Unknown user(s): {listed}")


class EventNotFoundError(NotificationError):
    kind = "EventNotFound"
    status_code = 404

    def __init__(self, event_id: UUID) -> None:
        self.event_id = event_id
        super().__init__(f"Event {event_id} not found")


class NotVisibleError(NotificationError):
    """The event exists but is not addressed to the requesting user."""

    kind = "NotVisible"
    status_code = 403

    def __init__(self, event_id: UUID) -> None:
        self.event_id = event_id
        super().__init__(f"Event {event_id} is not visible to this user")


class StorageError(NotificationError):
    """Transient failure reported by the underlying store."""

    kind = "StorageError"
    status_code = 500
    transient = True


class OperationCancelledError(NotificationError):
    kind = "Cancelled"
    status_code = 499


__all__ = [
    "NotificationError",
    "NotificationValidationError",
    "UnknownUserError",
    "EventNotFoundError",
    "NotVisibleError",
    "StorageError",
    "OperationCancelledError",
]
