"""Domain entities exposed by the application."""

from .borrow import DueBorrow
from .event import (
    MESSAGE_MAX_LENGTH,
    OBJECT_TITLE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Audience,
    Event,
    EventType,
    ObjectKind,
    ObjectRef,
    PublishRequest,
)
from .feed import FeedCursor, FeedItem, FeedPage, MarkResult
from .recipient_status import RecipientStatus
from .trigger import (
    BookAvailable,
    BorrowDueSoon,
    BorrowOverdue,
    DomainTrigger,
    FanOutFailure,
    FanOutReport,
    SubscriptionExpired,
)
from .user import ROLE_ADMIN, ROLE_MEMBER, User

__all__ = [
    "Audience",
    "BookAvailable",
    "BorrowDueSoon",
    "BorrowOverdue",
    "DomainTrigger",
    "DueBorrow",
    "Event",
    "EventType",
    "FanOutFailure",
    "FanOutReport",
    "FeedCursor",
    "FeedItem",
    "FeedPage",
    "MarkResult",
    "MESSAGE_MAX_LENGTH",
    "OBJECT_TITLE_MAX_LENGTH",
    "ObjectKind",
    "ObjectRef",
    "PublishRequest",
    "RecipientStatus",
    "ROLE_ADMIN",
    "ROLE_MEMBER",
    "SubscriptionExpired",
    "TITLE_MAX_LENGTH",
    "User",
]
