"""Domain entities describing published notification events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

TITLE_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 2000
OBJECT_TITLE_MAX_LENGTH = 255


class EventType(str, Enum):
    """Closed set of notification-worthy occurrences."""

    BOOK_AVAILABLE = "BOOK_AVAILABLE"
    BORROW_DUE_SOON = "BORROW_DUE_SOON"
    BORROW_OVERDUE = "BORROW_OVERDUE"
    RESERVATION_READY = "RESERVATION_READY"
    SUBSCRIPTION_ACTIVATED = "SUBSCRIPTION_ACTIVATED"
    SUBSCRIPTION_EXPIRED = "SUBSCRIPTION_EXPIRED"
    SYSTEM_ALERT = "SYSTEM_ALERT"


class ObjectKind(str, Enum):
    """Kinds of domain objects an event may point at."""

    BOOK = "book"
    BORROW = "borrow"
    RESERVATION = "reservation"
    SUBSCRIPTION = "subscription"


@dataclass(frozen=True)
class ObjectRef:
    """Reference to the domain object an event is about."""

    kind: ObjectKind
    id: UUID


@dataclass(frozen=True)
class Audience:
    """Who an event is addressed to: an explicit user set or everybody."""

    user_ids: frozenset[UUID] = frozenset()
    broadcast: bool = False

    @classmethod
    def targeted(cls, user_ids) -> "Audience":
        return cls(user_ids=frozenset(user_ids), broadcast=False)

    @classmethod
    def everyone(cls) -> "Audience":
        return cls(broadcast=True)

    @classmethod
    def user(cls, user_id: UUID) -> "Audience":
        return cls.targeted([user_id])


@dataclass(frozen=True)
class PublishRequest:
    """Everything the publisher needs to write one event.

    ``event_id`` is optional; supplying it makes the publish idempotent, which
    the fan-out dispatcher relies on when it retries a recipient.
    """

    type: EventType | str
    title: str
    message: str
    audience: Audience
    object_ref: ObjectRef | None = None
    object_title: str | None = None
    metadata: dict[str, Any] | None = None
    event_id: UUID | None = None


@dataclass
class Event:
    """Immutable record stored in the event log."""

    event_id: UUID
    type: EventType
    title: str
    message: str
    is_broadcast: bool
    created_at: datetime
    object_ref: ObjectRef | None = None
    object_title: str | None = None
    metadata: dict[str, Any] | None = field(default=None)


__all__ = [
    "TITLE_MAX_LENGTH",
    "MESSAGE_MAX_LENGTH",
    "OBJECT_TITLE_MAX_LENGTH",
    "EventType",
    "ObjectKind",
    "ObjectRef",
    "Audience",
    "PublishRequest",
    "Event",
]
