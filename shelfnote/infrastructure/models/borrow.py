"""SQLAlchemy model for book borrows."""

from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from shelfnote.infrastructure.database import Base
from shelfnote.utils import now_utc


class BorrowModel(Base):
    __tablename__ = "borrows"

    id = Column(Uuid, primary_key=True)
    user_id = Column(Uuid, nullable=False, index=True)
    book_id = Column(Uuid, ForeignKey("books.id"), nullable=False)
    borrowed_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)
    returned_at = Column(DateTime(timezone=True), nullable=True)

    book = relationship("BookModel", lazy="joined")


__all__ = ["BorrowModel"]
