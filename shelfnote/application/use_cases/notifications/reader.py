"""Per-user read side of the notification core: feed, counters and read marks."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from shelfnote.config import get_settings
from shelfnote.domain.entities import FeedCursor, FeedPage, MarkResult, User
from shelfnote.domain.errors import (
    EventNotFoundError,
    NotificationValidationError,
    NotVisibleError,
    UnknownUserError,
)
from shelfnote.infrastructure.database import transaction
from shelfnote.infrastructure.repositories import (
    EventRepository,
    RecipientStatusRepository,
    UserRepository,
)
from shelfnote.utils import system_clock

logger = logging.getLogger(__name__)


def resolve_limit(limit: int | None) -> int:
    """Apply the default page size and cap ``limit`` to the configured maximum."""

    settings = get_settings()
    if limit is None:
        return settings.feed_default_limit
    if limit < 1:
        raise NotificationValidationError("limit must be a positive integer")
    return min(limit, settings.feed_max_limit)


def _get_reader(session: Session, user_id: UUID) -> User:
    user = UserRepository(session).get(user_id)
    if user is None:
        raise UnknownUserError([user_id])
    return user


def list_feed(
    session: Session,
    user_id: UUID,
    *,
    cursor: FeedCursor | None = None,
    limit: int | None = None,
) -> FeedPage:
    """Return one page of the user's feed, newest first.

    Pages are ordered by ``(created_at, event_id)`` descending and the cursor
    points at the last item served, so events published after the first page
    never shift later pages.
    """

    page_size = resolve_limit(limit)
    with transaction(session):
        user = _get_reader(session, user_id)
        items = list(
            EventRepository(session).list_feed(
                user_id=user.id,
                visible_since=user.created_at,
                cursor=cursor,
                limit=page_size + 1,
            )
        )

    next_cursor = None
    if len(items) > page_size:
        items = items[:page_size]
        next_cursor = items[-1].cursor
    return FeedPage(items=items, next_cursor=next_cursor)


def unread_count(session: Session, user_id: UUID) -> int:
    with transaction(session):
        user = _get_reader(session, user_id)
        return EventRepository(session).count_unread(
            user_id=user.id, visible_since=user.created_at
        )


def mark_read(
    session: Session, user_id: UUID, event_id: UUID, *, clock=system_clock
) -> MarkResult:
    """Mark ``event_id`` as read for ``user_id``.

    Broadcast events get their status row on first interaction. Repeated calls
    succeed with ``changed=False``.
    """

    with transaction(session):
        user = _get_reader(session, user_id)
        event = EventRepository(session).get(event_id)
        if event is None:
            raise EventNotFoundError(event_id)

        statuses = RecipientStatusRepository(session)
        now = clock.now()
        if event.is_broadcast:
            if event.created_at < user.created_at:
                raise NotVisibleError(event_id)
            changed = statuses.insert_read(user.id, event_id, read_at=now)
            if not changed:
                changed = statuses.mark_read(user.id, event_id, read_at=now)
        else:
            changed = statuses.mark_read(user.id, event_id, read_at=now)
            if not changed and statuses.get(user.id, event_id) is None:
                raise NotVisibleError(event_id)

    return MarkResult(changed=changed)


def mark_all_read(session: Session, user_id: UUID, *, clock=system_clock) -> int:
    """Mark every visible unread event as read and return how many flipped.

    Existing unread rows are updated and untouched broadcasts are materialized
    as read in the same transaction.
    """

    with transaction(session):
        user = _get_reader(session, user_id)
        statuses = RecipientStatusRepository(session)
        now = clock.now()
        updated = statuses.mark_all_read(user.id, read_at=now)
        updated += statuses.materialize_broadcasts_as_read(
            user.id, visible_since=user.created_at, read_at=now
        )

    logger.info("Marked %s notification(s) as read for user %s", updated, user_id)
    return updated


__all__ = ["list_feed", "mark_all_read", "mark_read", "resolve_limit", "unread_count"]
