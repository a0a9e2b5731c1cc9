"""Public helpers for publishing, reading and fanning out notifications."""

from .cursor import decode_cursor, encode_cursor
from .fan_out import FanOutDispatcher, get_fan_out_dispatcher
from .publish import publish_event
from .reader import list_feed, mark_all_read, mark_read, resolve_limit, unread_count
from .triggers import Delivery, handle_stock_change, notify_trigger, plan_deliveries
from .validators import validate_publish_request

__all__ = [
    "Delivery",
    "FanOutDispatcher",
    "decode_cursor",
    "encode_cursor",
    "get_fan_out_dispatcher",
    "handle_stock_change",
    "list_feed",
    "mark_all_read",
    "mark_read",
    "notify_trigger",
    "plan_deliveries",
    "publish_event",
    "resolve_limit",
    "unread_count",
    "validate_publish_request",
]
