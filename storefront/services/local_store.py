from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ..db.database import Database, get_database
from ..db.models import KeyValueEntry


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _normalize_json(payload: Any) -> Any:
    if payload is None:
        return None
    return json.loads(json.dumps(payload, ensure_ascii=False, default=_json_default))


class KeyValueStore:
    """Device-local key/value persistence; the last write to a key wins."""

    def __init__(self, database: Optional[Database] = None) -> None:
        self.database = database or get_database()

    def get(self, key: str) -> Optional[Any]:
        with self.database.reading() as db:
            record = db.get(KeyValueEntry, key)
            return None if record is None else record.value

    def set(self, key: str, value: Any) -> None:
        payload = _normalize_json(value)
        with self.database.writing() as db:
            record = db.get(KeyValueEntry, key)
            if record is None:
                db.add(KeyValueEntry(key=key, value=payload))
            else:
                record.value = payload

    def delete(self, key: str) -> bool:
        with self.database.writing() as db:
            record = db.get(KeyValueEntry, key)
            if record is None:
                return False
            db.delete(record)
            return True


__all__ = ["KeyValueStore"]
