"""Mini README: Engine and transactional session helpers.

Usage
-----
database = Database("sqlite+pysqlite:///data/paylog.db")
database.create_schema()

with database.session_scope() as session:
    session.execute(...)

``session_scope`` is the single transactional boundary used by every ledger
and roster operation: it commits on success, rolls back on any exception and
converts SQLAlchemy failures into ``StorageError`` after the rollback.

SQLite connections enable foreign keys and open every transaction with
``BEGIN IMMEDIATE`` so concurrent read-modify-write cycles on a balance queue
on the database write lock. PostgreSQL relies on ``SELECT ... FOR UPDATE``
issued by the ledger engine.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import StorageError
from ..logging_utils import get_logger
from .models import Base

LOGGER = get_logger(__name__)

SQLITE_BUSY_TIMEOUT_SECONDS = 15.0


def _is_memory_database(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def _install_sqlite_hooks(engine: Engine) -> None:
    """Enable FK enforcement and write-locking transactions on SQLite."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:
        # Hand transaction control to SQLAlchemy so the "begin" hook below runs.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Own the engine and session factory for one database URL."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        engine_options: Dict[str, Any] = {"echo": echo}
        is_sqlite = make_url(url).get_backend_name() == "sqlite"
        if is_sqlite:
            engine_options["connect_args"] = {
                "check_same_thread": False,
                "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
            }
            if _is_memory_database(url):
                # One shared connection, otherwise each checkout sees an empty database.
                engine_options["poolclass"] = StaticPool
        else:
            engine_options["pool_pre_ping"] = True

        self.engine: Engine = create_engine(url, **engine_options)
        if is_sqlite:
            _install_sqlite_hooks(self.engine)
        self._session_maker: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False, class_=Session
        )
        LOGGER.debug("Database configured for backend %s", self.engine.dialect.name)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def create_schema(self) -> None:
        """Create any missing tables."""

        Base.metadata.create_all(bind=self.engine)
        LOGGER.info("Database schema ready (%s)", self.dialect_name)

    def get_session(self) -> Session:
        """Return a new session bound to this database."""

        return self._session_maker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        session = self.get_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as error:
            session.rollback()
            LOGGER.exception("Storage transaction rolled back")
            raise StorageError() from error
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


__all__ = ["Database"]
