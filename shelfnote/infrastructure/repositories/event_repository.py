"""Persistence helpers for the event log and the per-user feed queries."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, and_, false, func, or_, select
from sqlalchemy.orm import Session

from shelfnote.domain.entities import (
    Event,
    EventType,
    FeedCursor,
    FeedItem,
    ObjectKind,
    ObjectRef,
)
from shelfnote.infrastructure.database import insert_ignoring_conflicts
from shelfnote.infrastructure.models import EventModel, RecipientStatusModel
from shelfnote.utils import ensure_utc


class EventRepository:
    """Append and query :class:`Event` records.

    Events are never updated or deleted here; the only write is an insert that
    silently ignores an already stored ``event_id``.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, event_id: UUID) -> Event | None:
        model = self.session.get(EventModel, event_id)
        return self._to_entity(model) if model else None

    def insert(self, event: Event) -> bool:
        """Stage ``event`` in the current transaction.

        Returns ``False`` when an event with the same id already exists.
        """

        statement = insert_ignoring_conflicts(
            self.session, EventModel, index_elements=["event_id"]
        ).values(**self._to_row(event))
        result = self.session.execute(statement)
        return bool(result.rowcount)

    def list_feed(
        self,
        *,
        user_id: UUID,
        visible_since: datetime,
        cursor: FeedCursor | None,
        limit: int,
    ) -> Sequence[FeedItem]:
        is_read = self._is_read_expression()
        query = self._visible_query(
            select(EventModel, is_read.label("is_read")),
            user_id=user_id,
            visible_since=visible_since,
        )
        if cursor is not None:
            query = query.where(
                or_(
                    EventModel.created_at < cursor.created_at,
                    and_(
                        EventModel.created_at == cursor.created_at,
                        EventModel.event_id < cursor.event_id,
                    ),
                )
            )
        query = query.order_by(
            EventModel.created_at.desc(), EventModel.event_id.desc()
        ).limit(limit)
        return [
            FeedItem(event=self._to_entity(model), is_read=bool(read_flag))
            for model, read_flag in self.session.execute(query).all()
        ]

    def count_unread(self, *, user_id: UUID, visible_since: datetime) -> int:
        query = self._visible_query(
            select(func.count(EventModel.event_id)),
            user_id=user_id,
            visible_since=visible_since,
        ).where(self._is_read_expression() == false())
        return int(self.session.execute(query).scalar_one())

    @staticmethod
    def _is_read_expression():
        # Broadcasts without a materialized status row are unread.
        return func.coalesce(RecipientStatusModel.is_read, false())

    @staticmethod
    def _visible_query(query: Select, *, user_id: UUID, visible_since: datetime) -> Select:
        """Restrict ``query`` to events the user can see in their feed.

        Targeted events are visible through their status row; broadcasts are
        visible when created after the user's account.
        """

        return query.select_from(EventModel).outerjoin(
            RecipientStatusModel,
            and_(
                RecipientStatusModel.event_id == EventModel.event_id,
                RecipientStatusModel.user_id == user_id,
            ),
        ).where(
            or_(
                and_(
                    EventModel.is_broadcast.is_(True),
                    EventModel.created_at >= visible_since,
                ),
                and_(
                    EventModel.is_broadcast.is_(False),
                    RecipientStatusModel.user_id.is_not(None),
                ),
            )
        )

    @staticmethod
    def _to_row(event: Event) -> dict[str, object]:
        return {
            "event_id": event.event_id,
            "type": event.type.value,
            "title": event.title,
            "message": event.message,
            "object_kind": event.object_ref.kind.value if event.object_ref else None,
            "object_id": event.object_ref.id if event.object_ref else None,
            "object_title": event.object_title,
            "event_metadata": event.metadata,
            "is_broadcast": event.is_broadcast,
            "created_at": event.created_at,
        }

    @staticmethod
    def _to_entity(model: EventModel) -> Event:
        object_ref = None
        if model.object_kind and model.object_id is not None:
            object_ref = ObjectRef(kind=ObjectKind(model.object_kind), id=model.object_id)
        return Event(
            event_id=model.event_id,
            type=EventType(model.type),
            title=model.title,
            message=model.message,
            is_broadcast=bool(model.is_broadcast),
            created_at=ensure_utc(model.created_at),
            object_ref=object_ref,
            object_title=model.object_title,
            metadata=model.event_metadata,
        )


__all__ = ["EventRepository"]
