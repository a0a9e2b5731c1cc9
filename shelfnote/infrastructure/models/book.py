"""SQLAlchemy model for catalogue books."""

from sqlalchemy import Column, Integer, String, Uuid

from shelfnote.infrastructure.database import Base


class BookModel(Base):
    __tablename__ = "books"

    id = Column(Uuid, primary_key=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=True)
    available_copies = Column(Integer, nullable=False, default=0)


__all__ = ["BookModel"]
