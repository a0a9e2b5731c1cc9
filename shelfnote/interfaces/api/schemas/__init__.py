from .notification import (
    ErrorResponse,
    FanOutReportRead,
    FanOutRequest,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationFeedRead,
    NotificationPublishRequest,
    NotificationPublishResponse,
    NotificationRead,
    UnreadCountRead,
)

__all__ = [
    "ErrorResponse",
    "FanOutReportRead",
    "FanOutRequest",
    "MarkAllReadResponse",
    "MarkReadResponse",
    "NotificationFeedRead",
    "NotificationPublishRequest",
    "NotificationPublishResponse",
    "NotificationRead",
    "UnreadCountRead",
]
