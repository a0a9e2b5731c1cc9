"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import timedelta
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field

from shelfnote.domain.entities import (
    Audience,
    BookAvailable,
    BorrowDueSoon,
    BorrowOverdue,
    DomainTrigger,
    FanOutReport,
    FeedItem,
    ObjectRef,
    PublishRequest,
    SubscriptionExpired,
)
from shelfnote.utils import to_rfc3339


class NotificationObjectRead(BaseModel):
    """Domain object an event refers to."""

    kind: str
    id: UUID
    title: str | None = None


class NotificationRead(BaseModel):
    """Representation of a feed item delivered to the client."""

    id: UUID
    type: str
    title: str
    message: str
    object: NotificationObjectRead | None = None
    metadata: dict[str, Any] | None = None
    is_read: bool
    created_at: str = Field(..., description="RFC 3339 creation timestamp")

    @classmethod
    def from_item(cls, item: FeedItem) -> "NotificationRead":
        event = item.event
        related = None
        if event.object_ref is not None:
            related = NotificationObjectRead(
                kind=event.object_ref.kind.value,
                id=event.object_ref.id,
                title=event.object_title,
            )
        return cls(
            id=event.event_id,
            type=event.type.value,
            title=event.title,
            message=event.message,
            object=related,
            metadata=event.metadata,
            is_read=item.is_read,
            created_at=to_rfc3339(event.created_at),
        )


class NotificationFeedRead(BaseModel):
    items: list[NotificationRead]
    next_cursor: str | None = None


class UnreadCountRead(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    changed: bool


class MarkAllReadResponse(BaseModel):
    updated: int


class NotificationObjectCreate(BaseModel):
    kind: str
    id: UUID
    title: str | None = None


class NotificationPublishRequest(BaseModel):
    """Payload used by administrators to publish an event.

    Exactly one of ``user_ids`` or ``broadcast`` must be provided; the rest of
    the rules are enforced by the publisher.
    """

    type: str
    title: str
    message: str
    object: NotificationObjectCreate | None = None
    metadata: dict[str, Any] | None = None
    user_ids: list[UUID] | None = Field(default=None, description="Targeted recipients")
    broadcast: bool = False
    event_id: UUID | None = Field(
        default=None, description="Optional client generated id for idempotent retries"
    )

    def to_domain(self) -> PublishRequest:
        object_ref = None
        object_title = None
        if self.object is not None:
            object_ref = ObjectRef(kind=self.object.kind, id=self.object.id)
            object_title = self.object.title
        if self.broadcast:
            audience = Audience(user_ids=frozenset(self.user_ids or ()), broadcast=True)
        else:
            audience = Audience.targeted(self.user_ids or ())
        return PublishRequest(
            type=self.type,
            title=self.title,
            message=self.message,
            audience=audience,
            object_ref=object_ref,
            object_title=object_title,
            metadata=self.metadata,
            event_id=self.event_id,
        )


class NotificationPublishResponse(BaseModel):
    id: UUID


class BookAvailableTrigger(BaseModel):
    kind: Literal["book_available"]
    book_id: UUID
    title: str = Field(..., min_length=1, max_length=255)

    def to_domain(self) -> BookAvailable:
        return BookAvailable(book_id=self.book_id, title=self.title)


class BorrowDueSoonTrigger(BaseModel):
    kind: Literal["borrow_due_soon"]
    horizon_hours: float = Field(default=24, gt=0, le=24 * 30)

    def to_domain(self) -> BorrowDueSoon:
        return BorrowDueSoon(horizon=timedelta(hours=self.horizon_hours))


class BorrowOverdueTrigger(BaseModel):
    kind: Literal["borrow_overdue"]

    def to_domain(self) -> BorrowOverdue:
        return BorrowOverdue()


class SubscriptionExpiredTrigger(BaseModel):
    kind: Literal["subscription_expired"]
    subscription_id: UUID
    user_id: UUID

    def to_domain(self) -> SubscriptionExpired:
        return SubscriptionExpired(
            subscription_id=self.subscription_id, user_id=self.user_id
        )


TriggerPayload = Annotated[
    Union[
        BookAvailableTrigger,
        BorrowDueSoonTrigger,
        BorrowOverdueTrigger,
        SubscriptionExpiredTrigger,
    ],
    Field(discriminator="kind"),
]


class FanOutRequest(BaseModel):
    trigger: TriggerPayload
    trigger_key: str | None = Field(
        default=None,
        max_length=200,
        description="Token used to skip repeated fan-outs of the same trigger",
    )

    def to_domain(self) -> DomainTrigger:
        return self.trigger.to_domain()


class FanOutFailureRead(BaseModel):
    user_id: UUID
    error_kind: str
    detail: str | None = None


class FanOutReportRead(BaseModel):
    ok: int
    failed: list[FanOutFailureRead]
    cancelled: bool
    skipped: int
    deduplicated: bool
    event_ids: list[UUID]

    @classmethod
    def from_report(cls, report: FanOutReport) -> "FanOutReportRead":
        return cls(
            ok=report.ok,
            failed=[
                FanOutFailureRead(
                    user_id=failure.user_id,
                    error_kind=failure.error_kind,
                    detail=failure.detail,
                )
                for failure in report.failed
            ],
            cancelled=report.cancelled,
            skipped=report.skipped,
            deduplicated=report.deduplicated,
            event_ids=list(report.event_ids),
        )


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None


__all__ = [
    "BookAvailableTrigger",
    "BorrowDueSoonTrigger",
    "BorrowOverdueTrigger",
    "ErrorResponse",
    "FanOutFailureRead",
    "FanOutReportRead",
    "FanOutRequest",
    "MarkAllReadResponse",
    "MarkReadResponse",
    "NotificationFeedRead",
    "NotificationObjectCreate",
    "NotificationObjectRead",
    "NotificationPublishRequest",
    "NotificationPublishResponse",
    "NotificationRead",
    "SubscriptionExpiredTrigger",
    "UnreadCountRead",
]
