"""Shared fixtures: a throwaway SQLite database, a fake clock and factories."""

from __future__ import annotations

import os
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import UUID, uuid4

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from shelfnote.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from shelfnote.domain.entities import ROLE_ADMIN, ROLE_MEMBER, User  # noqa: E402
from shelfnote.infrastructure import database  # noqa: E402
from shelfnote.infrastructure.dedup_cache import TriggerDedupCache  # noqa: E402
from shelfnote.infrastructure.models import (  # noqa: E402
    RESERVATION_STATUS_PENDING,
    BookModel,
    BorrowModel,
    ReservationModel,
)
from shelfnote.infrastructure.repositories import UserRepository  # noqa: E402

CLOCK_START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that moves forward by ``step`` on every reading."""

    def __init__(self, start: datetime = CLOCK_START, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            value = self.current
            self.current = value + self.step
            return value

    def advance(self, delta: timedelta) -> None:
        with self._lock:
            self.current += delta


@pytest.fixture(autouse=True)
def fresh_database():
    """Recreate every table before each test."""

    from shelfnote.infrastructure import models  # noqa: F401

    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.Base.metadata.create_all(bind=database.engine)
    yield


@pytest.fixture(scope="session", autouse=True)
def _remove_database_file():
    yield
    database.engine.dispose()
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture()
def session():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_user(session):
    """Create users; by default their account predates every test event."""

    def factory(
        *,
        name: str = "Reader",
        role: str = ROLE_MEMBER,
        created_at: datetime | None = None,
        is_active: bool = True,
    ) -> User:
        user_id = uuid4()
        return UserRepository(session).create(
            User(
                id=user_id,
                name=name,
                email=f"{user_id.hex[:12]}@example.com",
                role=role,
                created_at=created_at or CLOCK_START - timedelta(days=1),
                is_active=is_active,
            )
        )

    return factory


@pytest.fixture()
def make_admin(make_user):
    def factory(**kwargs) -> User:
        return make_user(name="Librarian", role=ROLE_ADMIN, **kwargs)

    return factory


@pytest.fixture()
def make_book(session):
    def factory(title: str = "The Left Hand of Darkness", available_copies: int = 0) -> UUID:
        book = BookModel(id=uuid4(), title=title, available_copies=available_copies)
        session.add(book)
        session.commit()
        return book.id

    return factory


@pytest.fixture()
def make_reservation(session):
    def factory(
        book_id: UUID,
        user_id: UUID,
        *,
        status: str = RESERVATION_STATUS_PENDING,
        created_at: datetime | None = None,
    ) -> UUID:
        reservation = ReservationModel(
            id=uuid4(),
            user_id=user_id,
            book_id=book_id,
            status=status,
            created_at=created_at or CLOCK_START - timedelta(hours=1),
        )
        session.add(reservation)
        session.commit()
        return reservation.id

    return factory


@pytest.fixture()
def make_borrow(session):
    def factory(
        book_id: UUID,
        user_id: UUID,
        *,
        due_date: datetime,
        returned_at: datetime | None = None,
    ) -> UUID:
        borrow = BorrowModel(
            id=uuid4(),
            user_id=user_id,
            book_id=book_id,
            borrowed_at=due_date - timedelta(days=14),
            due_date=due_date,
            returned_at=returned_at,
        )
        session.add(borrow)
        session.commit()
        return borrow.id

    return factory


@pytest.fixture()
def dedup_cache() -> TriggerDedupCache:
    return TriggerDedupCache(ttl_seconds=60)
