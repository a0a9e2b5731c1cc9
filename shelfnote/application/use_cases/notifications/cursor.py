"""Opaque pagination tokens for notification feeds."""

from __future__ import annotations

import base64
import binascii
import json
from uuid import UUID

from shelfnote.domain.entities import FeedCursor
from shelfnote.domain.errors import NotificationValidationError
from shelfnote.utils import parse_rfc3339, to_rfc3339


def encode_cursor(cursor: FeedCursor) -> str:
    payload = json.dumps(
        {"t": to_rfc3339(cursor.created_at), "id": str(cursor.event_id)},
        separators=(",", ":"),
    )
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> FeedCursor:
    """Parse a token produced by :func:`encode_cursor`."""

    padded = token + "=" * (-len(token) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        return FeedCursor(
            created_at=parse_rfc3339(payload["t"]), event_id=UUID(payload["id"])
        )
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
        raise NotificationValidationError("Invalid cursor") from exc


__all__ = ["encode_cursor", "decode_cursor"]
