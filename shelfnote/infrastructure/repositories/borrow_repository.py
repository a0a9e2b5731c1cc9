"""Persistence helpers for borrows that need reminders."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.orm import Session, joinedload

from shelfnote.domain.entities import DueBorrow
from shelfnote.infrastructure.models import BorrowModel
from shelfnote.utils import ensure_utc


class BorrowRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def due_within(self, horizon: timedelta, *, now: datetime) -> list[DueBorrow]:
        """Return open borrows whose due date falls in ``[now, now + horizon]``."""

        query = (
            self.session.query(BorrowModel)
            .options(joinedload(BorrowModel.book))
            .filter(BorrowModel.returned_at.is_(None))
            .filter(BorrowModel.due_date >= now)
            .filter(BorrowModel.due_date <= now + horizon)
            .order_by(BorrowModel.due_date.asc(), BorrowModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def overdue(self, *, as_of: datetime) -> list[DueBorrow]:
        query = (
            self.session.query(BorrowModel)
            .options(joinedload(BorrowModel.book))
            .filter(BorrowModel.returned_at.is_(None))
            .filter(BorrowModel.due_date < as_of)
            .order_by(BorrowModel.due_date.asc(), BorrowModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    @staticmethod
    def _to_entity(model: BorrowModel) -> DueBorrow:
        return DueBorrow(
            borrow_id=model.id,
            user_id=model.user_id,
            book_title=model.book.title if model.book is not None else "",
            due_at=ensure_utc(model.due_date),
        )


__all__ = ["BorrowRepository"]
