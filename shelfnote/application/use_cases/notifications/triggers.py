"""Translate domain triggers into per-recipient publish requests."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from functools import singledispatch
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.orm import Session

from shelfnote.domain.entities import (
    Audience,
    BookAvailable,
    BorrowDueSoon,
    BorrowOverdue,
    DomainTrigger,
    DueBorrow,
    EventType,
    FanOutReport,
    ObjectKind,
    ObjectRef,
    PublishRequest,
    SubscriptionExpired,
)
from shelfnote.infrastructure.repositories import BorrowRepository, ReservationRepository
from shelfnote.utils import to_rfc3339

if TYPE_CHECKING:
    from .fan_out import FanOutDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivery:
    """One targeted publish derived from a trigger.

    ``after_publish`` runs with a fresh session once the event is committed;
    its failures are logged and never turn the delivery into a failure.
    """

    user_id: UUID
    request: PublishRequest
    after_publish: Callable[[Session, datetime], None] | None = None


@singledispatch
def plan_deliveries(trigger: DomainTrigger, session: Session, *, now: datetime) -> list[Delivery]:
    """Return the deliveries implied by ``trigger``."""

    raise TypeError(f"Unsupported trigger {type(trigger).__name__}")


@plan_deliveries.register
def _(trigger: BookAvailable, session: Session, *, now: datetime) -> list[Delivery]:
    holders = ReservationRepository(session).pending_by_book(trigger.book_id)
    book_ref = ObjectRef(kind=ObjectKind.BOOK, id=trigger.book_id)
    deliveries = []
    for user_id in holders:
        request = PublishRequest(
            type=EventType.BOOK_AVAILABLE,
            title="Your reserved book is now available!",
            message=f"The book '{trigger.title}' you reserved is now available.",
            audience=Audience.user(user_id),
            object_ref=book_ref,
            object_title=trigger.title[:255],
        )
        deliveries.append(
            Delivery(
                user_id=user_id,
                request=request,
                after_publish=_reservation_notifier(trigger.book_id, user_id),
            )
        )
    return deliveries


@plan_deliveries.register
def _(trigger: BorrowDueSoon, session: Session, *, now: datetime) -> list[Delivery]:
    borrows = BorrowRepository(session).due_within(trigger.horizon, now=now)
    return [
        _borrow_delivery(
            borrow,
            event_type=EventType.BORROW_DUE_SOON,
            title="Your borrowed book is due soon",
            message=(
                f"'{borrow.book_title}' is due on {borrow.due_at:%Y-%m-%d %H:%M} UTC. "
                "Please return or renew it in time."
            ),
        )
        for borrow in borrows
    ]


@plan_deliveries.register
def _(trigger: BorrowOverdue, session: Session, *, now: datetime) -> list[Delivery]:
    borrows = BorrowRepository(session).overdue(as_of=trigger.as_of or now)
    return [
        _borrow_delivery(
            borrow,
            event_type=EventType.BORROW_OVERDUE,
            title="Your borrowed book is overdue",
            message=(
                f"'{borrow.book_title}' was due on {borrow.due_at:%Y-%m-%d %H:%M} UTC. "
                "Please return it as soon as possible."
            ),
        )
        for borrow in borrows
    ]


@plan_deliveries.register
def _(trigger: SubscriptionExpired, session: Session, *, now: datetime) -> list[Delivery]:
    request = PublishRequest(
        type=EventType.SUBSCRIPTION_EXPIRED,
        title="Your subscription has expired",
        message="Your subscription has expired. Renew it to keep borrowing books.",
        audience=Audience.user(trigger.user_id),
        object_ref=ObjectRef(kind=ObjectKind.SUBSCRIPTION, id=trigger.subscription_id),
    )
    return [Delivery(user_id=trigger.user_id, request=request)]


def _borrow_delivery(
    borrow: DueBorrow, *, event_type: EventType, title: str, message: str
) -> Delivery:
    request = PublishRequest(
        type=event_type,
        title=title,
        message=message,
        audience=Audience.user(borrow.user_id),
        object_ref=ObjectRef(kind=ObjectKind.BORROW, id=borrow.borrow_id),
        object_title=borrow.book_title[:255] or None,
        metadata={"due_at": to_rfc3339(borrow.due_at)},
    )
    return Delivery(user_id=borrow.user_id, request=request)


def _reservation_notifier(book_id: UUID, user_id: UUID) -> Callable[[Session, datetime], None]:
    def mark(session: Session, now: datetime) -> None:
        ReservationRepository(session).mark_notified(
            book_id=book_id, user_id=user_id, notified_at=now
        )

    return mark


async def notify_trigger(
    dispatcher: "FanOutDispatcher",
    trigger: DomainTrigger,
    *,
    trigger_key: str | None = None,
) -> FanOutReport | None:
    """Run ``trigger`` as a side effect of a domain operation.

    Never raises: a failing fan-out is logged as a warning and ``None`` is
    returned so the originating operation can carry on.
    """

    try:
        report = await dispatcher.fan_out(trigger, trigger_key=trigger_key)
    except Exception:
        logger.warning(
            "Fan-out for %s failed; continuing without notifications",
            type(trigger).__name__,
            exc_info=True,
        )
        return None

    if report.failed:
        logger.warning(
            "Fan-out for %s finished with %s failure(s): %s",
            type(trigger).__name__,
            len(report.failed),
            ", ".join(f"{failure.user_id}={failure.error_kind}" for failure in report.failed),
        )
    return report


async def handle_stock_change(
    dispatcher: "FanOutDispatcher",
    *,
    book_id: UUID,
    title: str,
    previous_copies: int | None,
    current_copies: int | None,
) -> FanOutReport | None:
    """Notify reservation holders when a book comes back in stock.

    Only a transition from zero (or unknown) to a positive number of available
    copies triggers notifications.
    """

    if not current_copies or current_copies <= 0:
        return None
    if previous_copies is not None and previous_copies > 0:
        return None
    return await notify_trigger(dispatcher, BookAvailable(book_id=book_id, title=title))


__all__ = [
    "Delivery",
    "handle_stock_change",
    "notify_trigger",
    "plan_deliveries",
]
