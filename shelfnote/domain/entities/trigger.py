"""Domain triggers that fan out into per-recipient notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Union
from uuid import UUID


@dataclass(frozen=True)
class BookAvailable:
    """A book went from zero to at least one available copy."""

    book_id: UUID
    title: str


@dataclass(frozen=True)
class BorrowDueSoon:
    """Remind borrowers whose books are due within ``horizon``."""

    horizon: timedelta


@dataclass(frozen=True)
class BorrowOverdue:
    """Warn borrowers whose books were due before ``as_of``."""

    as_of: datetime | None = None


@dataclass(frozen=True)
class SubscriptionExpired:
    subscription_id: UUID
    user_id: UUID


DomainTrigger = Union[BookAvailable, BorrowDueSoon, BorrowOverdue, SubscriptionExpired]


@dataclass(frozen=True)
class FanOutFailure:
    """A recipient that could not be notified, with the final error kind."""

    user_id: UUID
    error_kind: str
    detail: str | None = None


@dataclass
class FanOutReport:
    """Summary of one fan-out run.

    Recipients never attempted because the run was cancelled or ran out of
    time are listed in ``failed`` with the ``Cancelled`` kind and counted in
    ``skipped``. ``deduplicated`` is set when the trigger key was already seen
    and nothing was published.
    """

    ok: int = 0
    failed: list[FanOutFailure] = field(default_factory=list)
    cancelled: bool = False
    skipped: int = 0
    deduplicated: bool = False
    event_ids: list[UUID] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.ok + len(self.failed)


__all__ = [
    "BookAvailable",
    "BorrowDueSoon",
    "BorrowOverdue",
    "SubscriptionExpired",
    "DomainTrigger",
    "FanOutFailure",
    "FanOutReport",
]
