"""Persistence helpers for per-recipient read state."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Uuid, func, literal, select, true, update
from sqlalchemy.orm import Session

from shelfnote.domain.entities import RecipientStatus
from shelfnote.infrastructure.database import insert_ignoring_conflicts
from shelfnote.infrastructure.models import EventModel, RecipientStatusModel
from shelfnote.utils import ensure_utc

_KEY = ["user_id", "event_id"]


class RecipientStatusRepository:
    """Provide idempotent writes keyed on ``(user_id, event_id)``.

    Every method only stages statements; committing is left to the caller so
    several writes can share one transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: UUID, event_id: UUID) -> RecipientStatus | None:
        model = self.session.get(RecipientStatusModel, (user_id, event_id))
        return self._to_entity(model) if model else None

    def insert_unread(
        self, event_id: UUID, user_ids: Iterable[UUID], *, created_at: datetime
    ) -> None:
        rows = [
            {
                "user_id": user_id,
                "event_id": event_id,
                "is_read": False,
                "read_at": None,
                "created_at": created_at,
            }
            for user_id in sorted(set(user_ids), key=str)
        ]
        if not rows:
            return
        statement = insert_ignoring_conflicts(
            self.session, RecipientStatusModel, index_elements=_KEY
        )
        self.session.execute(statement, rows)

    def insert_read(self, user_id: UUID, event_id: UUID, *, read_at: datetime) -> bool:
        """Materialize a status row already marked as read.

        Returns ``False`` when a row for the pair already exists.
        """

        statement = insert_ignoring_conflicts(
            self.session, RecipientStatusModel, index_elements=_KEY
        ).values(
            user_id=user_id,
            event_id=event_id,
            is_read=True,
            read_at=read_at,
            created_at=read_at,
        )
        return bool(self.session.execute(statement).rowcount)

    def mark_read(self, user_id: UUID, event_id: UUID, *, read_at: datetime) -> bool:
        """Flip an unread row to read; ``False`` if nothing transitioned."""

        statement = (
            update(RecipientStatusModel)
            .where(
                RecipientStatusModel.user_id == user_id,
                RecipientStatusModel.event_id == event_id,
                RecipientStatusModel.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        return bool(self.session.execute(statement).rowcount)

    def mark_all_read(self, user_id: UUID, *, read_at: datetime) -> int:
        statement = (
            update(RecipientStatusModel)
            .where(
                RecipientStatusModel.user_id == user_id,
                RecipientStatusModel.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(statement).rowcount or 0

    def materialize_broadcasts_as_read(
        self, user_id: UUID, *, visible_since: datetime, read_at: datetime
    ) -> int:
        """Insert read rows for every visible broadcast the user never touched."""

        touched = select(RecipientStatusModel.event_id).where(
            RecipientStatusModel.user_id == user_id
        )
        stamp = literal(read_at, DateTime(timezone=True))
        source = select(
            literal(user_id, Uuid()),
            EventModel.event_id,
            true(),
            stamp,
            stamp,
        ).where(
            EventModel.is_broadcast.is_(True),
            EventModel.created_at >= visible_since,
            EventModel.created_at <= read_at,
            EventModel.event_id.not_in(touched),
        )
        statement = insert_ignoring_conflicts(
            self.session,
            RecipientStatusModel,
            index_elements=_KEY,
            from_select=(["user_id", "event_id", "is_read", "read_at", "created_at"], source),
        )
        return self.session.execute(statement).rowcount or 0

    def recipients_of(self, event_id: UUID) -> set[UUID]:
        query = select(RecipientStatusModel.user_id).where(
            RecipientStatusModel.event_id == event_id
        )
        return set(self.session.execute(query).scalars())

    def count_for_event(self, event_id: UUID) -> int:
        query = (
            select(func.count())
            .select_from(RecipientStatusModel)
            .where(RecipientStatusModel.event_id == event_id)
        )
        return int(self.session.execute(query).scalar_one())

    @staticmethod
    def _to_entity(model: RecipientStatusModel) -> RecipientStatus:
        return RecipientStatus(
            user_id=model.user_id,
            event_id=model.event_id,
            is_read=bool(model.is_read),
            created_at=ensure_utc(model.created_at),
            read_at=ensure_utc(model.read_at),
        )


__all__ = ["RecipientStatusRepository"]
