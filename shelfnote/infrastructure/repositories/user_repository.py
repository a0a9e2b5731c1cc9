"""Persistence layer for user lookups."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from shelfnote.domain.entities import User
from shelfnote.infrastructure.models import UserModel
from shelfnote.utils import ensure_utc


class UserRepository:
    """Resolve users for audience validation and authentication."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: UUID) -> User | None:
        model = self.session.get(UserModel, user_id)
        if model is None or model.deleted:
            return None
        return self._to_entity(model)

    def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        """Return the existing, non deleted users among ``user_ids`` in one query."""

        unique_ids = set(user_ids)
        if not unique_ids:
            return {}

        query = (
            self.session.query(UserModel)
            .filter(UserModel.id.in_(unique_ids))
            .filter(UserModel.deleted.is_(False))
        )
        return {model.id: self._to_entity(model) for model in query.all()}

    def create(self, user: User) -> User:
        model = UserModel(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
            is_active=user.is_active,
            deleted=user.deleted,
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            role=model.role,
            created_at=ensure_utc(model.created_at),
            is_active=bool(model.is_active),
            deleted=bool(model.deleted),
        )


__all__ = ["UserRepository"]
