"""Helpers for working with timezone-aware UTC datetimes."""

from __future__ import annotations

from datetime import datetime, timezone


class SystemClock:
    """Clock backed by the host wall time, always expressed in UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


system_clock = SystemClock()


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return system_clock.now()


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in UTC.

    SQLite drops ``tzinfo`` on the way back from the database; naive values read
    from storage are therefore assumed to already be UTC.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_rfc3339(value: datetime) -> str:
    """Render ``value`` as an RFC 3339 timestamp with a ``Z`` suffix."""

    normalized = ensure_utc(value)
    if normalized is None:  # pragma: no cover
        msg = "Cannot format a missing timestamp"
        raise ValueError(msg)
    return normalized.isoformat().replace("+00:00", "Z")


def parse_rfc3339(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp produced by :func:`to_rfc3339`."""

    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
