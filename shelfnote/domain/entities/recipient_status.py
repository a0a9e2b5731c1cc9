"""Domain entity representing the read state of an event for one user."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass
class RecipientStatus:
    """Per-recipient read/unread state keyed by ``(user_id, event_id)``."""

    user_id: UUID
    event_id: UUID
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None


__all__ = ["RecipientStatus"]
