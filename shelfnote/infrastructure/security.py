"""Security helpers for verifying bearer tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from shelfnote.config import get_settings


def create_access_token(
    user_id: UUID, *, role: str, expires_delta: timedelta | None = None
) -> str:
    """Issue a token for ``user_id``; used by scripts and tests."""

    settings = get_settings()
    expire = datetime.now(tz=timezone.utc) + (expires_delta or timedelta(minutes=30))
    claims = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


__all__ = ["create_access_token", "decode_access_token"]
