"""SQLAlchemy model for per-recipient read state."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Uuid,
)
from sqlalchemy.sql import expression

from shelfnote.infrastructure.database import Base
from shelfnote.utils import now_utc


class RecipientStatusModel(Base):
    """Read/unread state of one event for one user."""

    __tablename__ = "recipient_status"
    __table_args__ = (
        CheckConstraint(
            "NOT is_read OR read_at IS NOT NULL", name="ck_recipient_status_read_at"
        ),
    )

    user_id = Column(Uuid, primary_key=True)
    event_id = Column(
        Uuid, ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True
    )
    is_read = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)


Index(
    "ix_recipient_status_user_created_at",
    RecipientStatusModel.user_id,
    RecipientStatusModel.created_at.desc(),
)


__all__ = ["RecipientStatusModel"]
