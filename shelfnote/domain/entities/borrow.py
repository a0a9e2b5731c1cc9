"""Domain entity describing a borrow that needs a reminder."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class DueBorrow:
    borrow_id: UUID
    user_id: UUID
    book_title: str
    due_at: datetime


__all__ = ["DueBorrow"]
