"""Use case for writing one event and its initial recipient rows."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shelfnote.domain.entities import Audience, Event, PublishRequest
from shelfnote.domain.errors import (
    NotificationValidationError,
    StorageError,
    UnknownUserError,
)
from shelfnote.infrastructure.database import transaction
from shelfnote.infrastructure.repositories import (
    EventRepository,
    RecipientStatusRepository,
    UserRepository,
)
from shelfnote.utils import system_clock

from .validators import validate_publish_request

logger = logging.getLogger(__name__)


def publish_event(session: Session, request: PublishRequest, *, clock=system_clock) -> UUID:
    """Validate ``request`` and persist it, returning the event id.

    For targeted audiences every user must exist; their unread status rows are
    written in the same transaction as the event, so a committed targeted event
    always has its recipients. Broadcasts only write the event row.
    """

    request = validate_publish_request(request)
    audience = request.audience

    if not audience.broadcast:
        try:
            known = UserRepository(session).get_many(audience.user_ids)
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError("Failed to resolve the audience") from exc
        missing = audience.user_ids - set(known)
        if missing:
            raise UnknownUserError(missing)

    event = Event(
        event_id=request.event_id or uuid4(),
        type=request.type,
        title=request.title,
        message=request.message,
        is_broadcast=audience.broadcast,
        created_at=clock.now(),
        object_ref=request.object_ref,
        object_title=request.object_title,
        metadata=request.metadata,
    )

    with transaction(session):
        events = EventRepository(session)
        statuses = RecipientStatusRepository(session)
        inserted = events.insert(event)
        if not inserted:
            _ensure_same_event(events, statuses, event, audience)
        elif not audience.broadcast:
            statuses.insert_unread(
                event.event_id, audience.user_ids, created_at=event.created_at
            )

    if inserted:
        logger.info(
            "Published %s event %s to %s",
            event.type.value,
            event.event_id,
            "everyone" if audience.broadcast else f"{len(audience.user_ids)} user(s)",
        )
    else:
        logger.info("Event %s was already published; nothing to write", event.event_id)
    return event.event_id


def _ensure_same_event(
    events: EventRepository,
    statuses: RecipientStatusRepository,
    event: Event,
    audience: Audience,
) -> None:
    """Reject a repeated ``event_id`` whose content or audience differs.

    The stored event and its recipient rows were committed together, so a
    matching repeat has nothing left to write.
    """

    stored = events.get(event.event_id)
    if stored is None:  # pragma: no cover
        raise StorageError(f"Event {event.event_id} vanished during publish")
    if (
        stored.type != event.type
        or stored.title != event.title
        or stored.message != event.message
        or stored.is_broadcast != event.is_broadcast
        or stored.object_ref != event.object_ref
        or stored.object_title != event.object_title
        or stored.metadata != event.metadata
    ):
        raise NotificationValidationError(
            f"Event {event.event_id} already exists with different content"
        )
    if not audience.broadcast and statuses.recipients_of(event.event_id) != set(
        audience.user_ids
    ):
        raise NotificationValidationError(
            f"Event {event.event_id} already exists with a different audience"
        )


__all__ = ["publish_event"]
