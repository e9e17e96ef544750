from __future__ import annotations

import logging

from sqlalchemy import inspect

from .database import Database, get_database
from .models import Base, KeyValueEntry

logger = logging.getLogger(__name__)


def init_db(database: Database | None = None) -> None:
    """Create the key/value table if this device has never stored anything."""
    db_instance = database or get_database()
    if inspect(db_instance.engine).has_table(KeyValueEntry.__tablename__):
        return
    Base.metadata.create_all(bind=db_instance.engine, tables=[KeyValueEntry.__table__])
    logger.info("Created local store table %s", KeyValueEntry.__tablename__)


__all__ = ["init_db"]
