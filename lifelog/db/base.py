"""
Database handle.

`Database` owns one engine and its session factory. The app uses a single
process-wide instance created lazily from settings; tests build their own
independent instances and override `get_db`.
"""
from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from typing import Callable, Generator, Iterator, Optional, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lifelog.core.config import settings
from lifelog.core.errors import StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # leave BEGIN to _begin_sqlite_transaction so SAVEPOINTs nest correctly
    dbapi_connection.isolation_level = None


def _begin_sqlite_transaction(conn) -> None:
    conn.exec_driver_sql("BEGIN")


class Database:
    """Owner of the engine and session factory for one store."""

    def __init__(self, url: str):
        self.url = url
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StorageError(f"Database {self.url} is not open.")
        return self._engine

    def open(self) -> "Database":
        """Create the engine and any missing tables. Idempotent."""
        if self._engine is not None:
            return self

        # registers every mapped table on Base.metadata
        import lifelog.models  # noqa: F401

        url = make_url(self.url)
        kwargs: dict = {}
        if url.drivername.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # one shared connection, otherwise every session sees an empty db
                kwargs["poolclass"] = StaticPool

        engine = create_engine(self.url, **kwargs)
        if url.drivername.startswith("sqlite"):
            event.listen(engine, "connect", _configure_sqlite_connection)
            event.listen(engine, "begin", _begin_sqlite_transaction)

        try:
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as exc:
            engine.dispose()
            raise StorageError(f"Could not initialise database: {exc}") from exc

        self._engine = engine
        self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info("Database opened at %s", url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database closed")

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise StorageError(f"Database {self.url} is not open.")
        return self._sessionmaker()


_database: Optional[Database] = None


def get_database() -> Database:
    """Return the process-wide database, opening it on first use."""
    global _database
    if _database is None:
        _database = Database(settings.DATABASE_URL)
    return _database.open()


def close_database() -> None:
    global _database
    if _database is not None:
        _database.close()
        _database = None


def get_db() -> Generator[Session, None, None]:
    db = get_database().session()
    try:
        yield db
    finally:
        db.close()


def commit(db: Session) -> None:
    """Commit, or roll back and raise StorageError so the store is left unchanged."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(f"Database write failed: {exc}") from exc


@contextmanager
def storage_errors(db: Session) -> Iterator[None]:
    """Roll back and re-raise any engine failure inside the block as StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(f"Database operation failed: {exc}") from exc


def flush(db: Session) -> None:
    with storage_errors(db):
        db.flush()


F = TypeVar("F", bound=Callable)


def storage_guard(fn: F) -> F:
    """Decorator for store functions whose first argument is the Session."""
    @functools.wraps(fn)
    def wrapper(db: Session, *args, **kwargs):
        with storage_errors(db):
            return fn(db, *args, **kwargs)
    return wrapper  # type: ignore[return-value]
