"""Persistence helpers for reservation queues."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from shelfnote.infrastructure.models import (
    RESERVATION_STATUS_NOTIFIED,
    RESERVATION_STATUS_PENDING,
    ReservationModel,
)


class ReservationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def pending_by_book(self, book_id: UUID) -> list[UUID]:
        """Return the holders of pending reservations, oldest reservation first."""

        query = (
            self.session.query(ReservationModel.user_id)
            .filter(ReservationModel.book_id == book_id)
            .filter(ReservationModel.status == RESERVATION_STATUS_PENDING)
            .order_by(ReservationModel.created_at.asc(), ReservationModel.id.asc())
        )
        holders: list[UUID] = []
        for (user_id,) in query.all():
            if user_id not in holders:
                holders.append(user_id)
        return holders

    def mark_notified(self, *, book_id: UUID, user_id: UUID, notified_at: datetime) -> int:
        statement = (
            update(ReservationModel)
            .where(
                ReservationModel.book_id == book_id,
                ReservationModel.user_id == user_id,
                ReservationModel.status == RESERVATION_STATUS_PENDING,
            )
            .values(status=RESERVATION_STATUS_NOTIFIED, notified_at=notified_at)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.commit()
        return result.rowcount or 0


__all__ = ["ReservationRepository"]
