"""FastAPI dependency utilities."""

from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from shelfnote.application.use_cases.notifications import (
    FanOutDispatcher,
    get_fan_out_dispatcher,
)
from shelfnote.domain.entities import User
from shelfnote.infrastructure.database import get_db
from shelfnote.infrastructure.repositories import UserRepository
from shelfnote.infrastructure.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Invalid credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_current_user(token: str, db: Session) -> User:
    """Resolve the authenticated user for the provided token."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _unauthorized() from exc

    subject = payload.get("sub")
    if not isinstance(subject, str):
        raise _unauthorized()
    try:
        user_id = UUID(subject)
    except ValueError as exc:
        raise _unauthorized() from exc

    user = UserRepository(db).get(user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Return the authenticated user from the bearer token."""

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Not authenticated")
    return resolve_current_user(credentials.credentials, db)


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Ensure the authenticated user is active."""

    if not current_user.is_active:
        raise _unauthorized("Inactive user")
    return current_user


def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    """Ensure the authenticated user has administrator privileges."""

    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )
    return current_user


def get_dispatcher() -> FanOutDispatcher:
    return get_fan_out_dispatcher()
