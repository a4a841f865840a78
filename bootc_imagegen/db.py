"""Build history database.

SQLAlchemy setup for the history store. History lives in a single
SQLite file by default; a running build and a `build delete` from
another shell may write to it at the same time, so SQLite connections
use WAL journaling and a busy timeout.
"""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from bootc_imagegen.config import get_settings

SQLITE_BUSY_TIMEOUT = 30


class Base(DeclarativeBase):
    """Declarative base of the history tables."""

    pass


def _enable_sqlite_wal(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def get_engine(db_url: str | None = None) -> Engine:
    """Create the history database engine.

    For a file-backed SQLite URL the parent directory is created.

    Args:
        db_url: Database URL (``Settings.db_url`` if omitted).
    """
    url = make_url(db_url or get_settings().db_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
    )
    event.listen(engine, "connect", _enable_sqlite_wal)
    return engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``.

    Loaded records stay readable after commit, so history snapshots can
    be built outside the session.
    """
    return sessionmaker(
        bind=engine or get_engine(), autoflush=False, expire_on_commit=False
    )


@contextmanager
def get_session(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Open a session committed on exit and rolled back on error."""
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine: Engine | None = None) -> None:
    """Create the history tables that do not exist yet."""
    # Registers BuildRecord with the metadata
    from bootc_imagegen.builds import models  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


def open_history_db(db_url: str | None = None) -> sessionmaker[Session]:
    """Prepare the history database and return a session factory for it."""
    engine = get_engine(db_url)
    create_all_tables(engine)
    return get_session_factory(engine)


__all__ = [
    "Base",
    "create_all_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "open_history_db",
]
