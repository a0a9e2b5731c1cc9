"""Database configuration and session management."""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Insert, Select, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from shelfnote.config import Settings, get_settings
from shelfnote.domain.errors import StorageError


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


settings = get_settings()

logger = logging.getLogger(__name__)


def _engine_options(settings: Settings) -> dict[str, Any]:
    """Return dialect specific keyword arguments for :func:`create_engine`."""

    url = make_url(settings.database_url)
    backend = url.get_backend_name()
    if backend == "sqlite":
        # Fan-out publishes run in worker threads, each with its own session.
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}

    options: dict[str, Any] = {
        "pool_size": settings.database_pool_size,
        "max_overflow": 0,
    }
    if backend == "postgresql":
        timeout_ms = int(
            max(settings.publish_timeout_seconds, settings.reader_timeout_seconds) * 1000
        )
        options["connect_args"] = {"options": f"-c statement_timeout={timeout_ms}"}
    return options


engine = create_engine(settings.database_url, pool_pre_ping=True, **_engine_options(settings))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def initialize_database() -> None:
    """Ensure all ORM models have corresponding database tables."""

    from shelfnote.infrastructure import models  # noqa: F401  # ensure models are imported

    Base.metadata.create_all(bind=engine, checkfirst=True)


def get_db() -> Generator:
    """Yield a database session and close it afterwards."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Commit the work done inside the block or roll it back entirely.

    Driver level failures are re-raised as :class:`StorageError` so callers
    only ever deal with the notification error taxonomy.
    """

    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Rolled back transaction after storage failure: %s", exc)
        raise StorageError(f"Storage failure: {exc.__class__.__name__}") from exc
    except BaseException:
        session.rollback()
        raise


def insert_ignoring_conflicts(
    session: Session,
    model: type[Base],
    *,
    index_elements: list[str],
    from_select: tuple[list[str], Select] | None = None,
) -> Insert:
    """Build an ``INSERT`` for ``model`` that skips rows violating ``index_elements``.

    ``from_select`` optionally provides ``(column_names, select)`` to insert the
    rows produced by a query instead of bound values.
    """

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    elif dialect in {"mysql", "mariadb"}:
        from sqlalchemy.dialects.mysql import insert as dialect_insert
    else:
        raise RuntimeError(
            "Conflict tolerant inserts are not supported for the '%s' dialect" % dialect
        )

    statement = dialect_insert(model)
    if from_select is not None:
        names, query = from_select
        statement = statement.from_select(names, query)
    if dialect in {"mysql", "mariadb"}:
        return statement.prefix_with("IGNORE")
    return statement.on_conflict_do_nothing(index_elements=index_elements)
