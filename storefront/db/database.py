from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_settings

logger = logging.getLogger(__name__)


def _prepare_sqlite_file(url: str) -> None:
    database = make_url(url).database
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


class Database:
    """Engine and session factory for the device-local key/value file."""

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or get_settings().local_store_url
        self.is_sqlite = self.url.startswith("sqlite")
        engine_kwargs = {"future": True}
        if self.is_sqlite:
            _prepare_sqlite_file(self.url)
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if make_url(self.url).database in (None, "", ":memory:"):
                # One shared connection, otherwise every session sees an empty database.
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True
        self.engine = create_engine(self.url, **engine_kwargs)
        if self.is_sqlite:
            event.listen(self.engine, "connect", self._sqlite_pragmas)
        self._sessions = sessionmaker(bind=self.engine, autoflush=False, future=True)

    @staticmethod
    def _sqlite_pragmas(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA busy_timeout=30000;")
        finally:
            cursor.close()

    def session(self) -> Session:
        return self._sessions()

    @contextmanager
    def reading(self) -> Generator[Session, None, None]:
        session = self.session()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def writing(self) -> Generator[Session, None, None]:
        """Session that commits on clean exit and rolls back on error."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            logger.warning("Local store transaction rolled back", exc_info=True)
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


_database: Optional[Database] = None


def get_database() -> Database:
    global _database
    if _database is None:
        _database = Database()
    return _database


def reset_database() -> None:
    global _database
    if _database is not None:
        _database.dispose()
    _database = None


__all__ = ["Database", "get_database", "reset_database"]
