"""Database handle, session factory, and shared column types.

The engine (and its connection pool) lives on a ``Database`` object that
main.py opens in the app lifespan and disposes at shutdown. Request
handlers receive sessions through the ``get_db`` dependency; nothing
imports a module-level engine.

All naive datetimes loaded from the store are tagged as UTC to prevent
naive-vs-aware comparison errors (SQLite drops tzinfo).
"""

import json
from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy import DateTime, Text, TypeDecorator, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings


class UTCDateTime(TypeDecorator):
    """DateTime type that ensures UTC timezone on load."""
    impl = DateTime
    cache_ok = True

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class JSONText(TypeDecorator):
    """Structured value stored as serialized JSON text.

    Lists and dicts go in, lists and dicts come out; the serialized
    string never leaves this type.
    """
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps(value, default=str)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, (list, dict)):
            return value
        return json.loads(value)


class Database:
    """Owns the engine/pool for the lifetime of the process.

    Lifecycle: construct at startup, ``dispose()`` at shutdown.
    """

    def __init__(self, url: str, *, pool_size: int = 20, max_overflow: int = 10,
                 pool_timeout: int = 2, pool_recycle: int = 30, connect_timeout: int = 10):
        self.url = url
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
            self.engine = create_engine(url, **kwargs)
            event.listen(self.engine, "connect", _sqlite_pragmas)
        else:
            self.engine = create_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,
                connect_args={"connect_timeout": connect_timeout},
            )
            event.listen(self.engine, "connect", _set_timezone)
        self.session_factory = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, s: Settings) -> "Database":
        return cls(
            s.database_url,
            pool_size=s.db_pool_size,
            max_overflow=s.db_max_overflow,
            pool_timeout=s.db_pool_timeout,
            pool_recycle=s.db_pool_recycle,
            connect_timeout=s.db_connect_timeout,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    def create_tables(self) -> None:
        from .models import Base

        Base.metadata.create_all(bind=self.engine, checkfirst=True)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def _sqlite_pragmas(dbapi_conn, connection_record):
    """SQLite leaves foreign keys off unless asked; deletes must cascade."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _set_timezone(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("SET timezone = 'UTC'")
    cursor.close()


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
