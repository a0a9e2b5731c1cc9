"""Read-side views returned to notification feed consumers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from .event import Event


@dataclass(frozen=True)
class FeedCursor:
    """Position in a feed: the last ``(created_at, event_id)`` pair served."""

    created_at: datetime
    event_id: UUID


@dataclass
class FeedItem:
    """An event as seen by one reader, with its derived read flag."""

    event: Event
    is_read: bool

    @property
    def cursor(self) -> FeedCursor:
        return FeedCursor(created_at=self.event.created_at, event_id=self.event.event_id)


@dataclass
class FeedPage:
    items: list[FeedItem]
    next_cursor: FeedCursor | None = None


@dataclass(frozen=True)
class MarkResult:
    """Outcome of marking one event as read."""

    changed: bool


__all__ = ["FeedCursor", "FeedItem", "FeedPage", "MarkResult"]
