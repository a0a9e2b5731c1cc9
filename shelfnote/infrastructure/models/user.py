"""SQLAlchemy model for the user table."""

from sqlalchemy import Boolean, Column, DateTime, String, Uuid
from sqlalchemy.sql import expression

from shelfnote.infrastructure.database import Base
from shelfnote.utils import now_utc


class UserModel(Base):
    """Database representation of a library user."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(120), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    is_active = Column(Boolean, nullable=False, default=True)
    deleted = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=expression.false(),
    )


__all__ = ["UserModel"]
