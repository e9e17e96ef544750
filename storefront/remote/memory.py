from __future__ import annotations

import copy
import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..exceptions import RemoteStoreError
from .base import QueryResult, RemoteDataStore, RemoteQuery, Row, RowFilter, as_row_list, require_match

DEFAULT_UNIQUE_KEYS: Dict[str, Tuple[str, ...]] = {
    "wishlists": ("user_id", "product_id"),
    "reviews": ("user_id", "product_id"),
    "site_settings": ("key",),
    "categories": ("slug",),
}

# (table, embedded table) -> (cardinality, joining column). "one" means the
# column lives on the outer row; "many" means it lives on the embedded rows.
DEFAULT_RELATIONS: Dict[Tuple[str, str], Tuple[str, str]] = {
    ("products", "categories"): ("one", "category_id"),
    ("orders", "order_items"): ("many", "order_id"),
    ("return_requests", "orders"): ("one", "order_id"),
}

_EMBED_RE = re.compile(r"^\s*(\w+)\s*\((.*)\)\s*$", re.DOTALL)


def _split_columns(columns: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current = ""
    for char in columns:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += char
    if current.strip():
        parts.append(current.strip())
    return parts


def _singular(name: str) -> str:
    if name.endswith("ies"):
        return name[:-3] + "y"
    if name.endswith("s"):
        return name[:-1]
    return name


def _like_to_regex(pattern: str) -> re.Pattern[str]:
    out = []
    escaped = False
    for char in pattern:
        if escaped:
            out.append(re.escape(char))
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "%":
            out.append(".*")
        elif char == "_":
            out.append(".")
        else:
            out.append(re.escape(char))
    return re.compile("^" + "".join(out) + "$", re.IGNORECASE | re.DOTALL)


def _comparable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            number = Decimal(value)
        except InvalidOperation:
            return value
        return number if number.is_finite() else value
    return value


def _sort_key(value: Any) -> Tuple[int, Any]:
    comparable = _comparable(value)
    if isinstance(comparable, Decimal) and comparable.is_finite():
        return (0, comparable)
    return (1, str(comparable))


def _values_equal(left: Any, right: Any) -> bool:
    if isinstance(left, Enum):
        left = left.value
    if isinstance(right, Enum):
        right = right.value
    if left == right:
        return True
    return str(left) == str(right)


def _matches(row: Row, row_filter: RowFilter) -> bool:
    value = row.get(row_filter.column)
    if row_filter.op == "eq":
        if row_filter.value is None:
            return value is None
        return value is not None and _values_equal(value, row_filter.value)
    if row_filter.op == "in":
        return any(_values_equal(value, candidate) for candidate in row_filter.value)
    if value is None:
        return False
    if row_filter.op == "ilike":
        return bool(_like_to_regex(str(row_filter.value)).match(str(value)))
    try:
        left, right = _comparable(value), _comparable(row_filter.value)
        if row_filter.op == "gte":
            return left >= right
        if row_filter.op == "lte":
            return left <= right
    except TypeError:
        return False
    return False


class InMemoryDataStore(RemoteDataStore):
    """Process-local stand-in for the hosted backend.

    Sorting is stable, so rows with equal sort keys keep insertion order,
    mirroring the backend's natural order for ties.
    """

    def __init__(
        self,
        tables: Optional[Dict[str, Iterable[Row]]] = None,
        *,
        unique_keys: Optional[Dict[str, Tuple[str, ...]]] = None,
        relations: Optional[Dict[Tuple[str, str], Tuple[str, str]]] = None,
    ) -> None:
        self._tables: Dict[str, List[Row]] = {}
        self._relations = dict(DEFAULT_RELATIONS)
        if relations:
            self._relations.update(relations)
        self._unique_keys = dict(DEFAULT_UNIQUE_KEYS)
        if unique_keys:
            self._unique_keys.update(unique_keys)
        self.access_token: Optional[str] = None
        for name, rows in (tables or {}).items():
            self.seed(name, rows)

    def seed(self, table: str, rows: Iterable[Row]) -> None:
        target = self._tables.setdefault(table, [])
        for row in rows:
            target.append(self._stamp(dict(row)))

    def rows(self, table: str) -> List[Row]:
        return copy.deepcopy(self._tables.get(table, []))

    def set_access_token(self, token: Optional[str]) -> None:
        self.access_token = token

    async def select(self, query: RemoteQuery) -> QueryResult:
        rows = [row for row in self._tables.get(query.table, []) if self._row_matches(row, query.filters)]
        total = len(rows) if query.count else None

        if query.sort is not None:
            column = query.sort.column
            present = [row for row in rows if row.get(column) is not None]
            missing = [row for row in rows if row.get(column) is None]
            present.sort(key=lambda row: _sort_key(row.get(column)), reverse=not query.sort.ascending)
            # Nulls sort last either way, like the backend's default.
            rows = present + missing
        if query.offset is not None:
            rows = rows[query.offset :]
        if query.limit is not None:
            rows = rows[: query.limit]

        projected = [self._project(query.table, row, query.columns) for row in rows]
        return QueryResult(rows=projected, total_count=total)

    async def insert(self, table: str, rows: Row | Sequence[Row]) -> List[Row]:
        payload = [self._stamp(row) for row in as_row_list(rows)]
        target = self._tables.setdefault(table, [])
        keys = self._unique_keys.get(table)
        if keys:
            seen = {tuple(str(existing.get(k)) for k in keys) for existing in target}
            for row in payload:
                identity = tuple(str(row.get(k)) for k in keys)
                if identity in seen:
                    raise RemoteStoreError(
                        f"duplicate key value violates unique constraint on {table}",
                        status_code=409,
                        code="23505",
                        table=table,
                    )
                seen.add(identity)
        target.extend(payload)
        return copy.deepcopy(payload)

    async def update(self, table: str, match: Row, patch: Row) -> List[Row]:
        require_match(table, match)
        updated: List[Row] = []
        for row in self._tables.get(table, []):
            if all(_values_equal(row.get(k), v) for k, v in match.items()):
                row.update(patch)
                row["updated_at"] = datetime.now(timezone.utc).isoformat()
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, match: Row) -> List[Row]:
        require_match(table, match)
        kept: List[Row] = []
        removed: List[Row] = []
        for row in self._tables.get(table, []):
            if all(_values_equal(row.get(k), v) for k, v in match.items()):
                removed.append(row)
            else:
                kept.append(row)
        self._tables[table] = kept
        return copy.deepcopy(removed)

    @staticmethod
    def _row_matches(row: Row, filters: Sequence[RowFilter]) -> bool:
        return all(_matches(row, row_filter) for row_filter in filters)

    @staticmethod
    def _stamp(row: Row) -> Row:
        stamped = dict(row)
        stamped.setdefault("id", uuid.uuid4().hex)
        stamped.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        return stamped

    def _project(self, table: str, row: Row, columns: str) -> Row:
        parts = _split_columns(columns or "*")
        result: Row = {}
        for part in parts:
            embed = _EMBED_RE.match(part)
            if embed:
                related, inner = embed.group(1), embed.group(2)
                result[related] = self._embed(table, row, related, inner)
            elif part == "*":
                result.update(copy.deepcopy(row))
            elif part in row:
                result[part] = copy.deepcopy(row[part])
        return result

    def _relation(self, table: str, row: Row, related: str) -> Tuple[str, str]:
        declared = self._relations.get((table, related))
        if declared is not None:
            return declared
        foreign_key = f"{_singular(related)}_id"
        if foreign_key in row:
            return "one", foreign_key
        return "many", f"{_singular(table)}_id"

    def _embed(self, table: str, row: Row, related: str, columns: str) -> Any:
        related_rows = self._tables.get(related, [])
        cardinality, column = self._relation(table, row, related)
        if cardinality == "one":
            target = row.get(column)
            if target is None:
                return None
            for candidate in related_rows:
                if _values_equal(candidate.get("id"), target):
                    return self._project(related, candidate, columns)
            return None
        return [
            self._project(related, candidate, columns)
            for candidate in related_rows
            if _values_equal(candidate.get(column), row.get("id"))
        ]


__all__ = ["InMemoryDataStore", "DEFAULT_UNIQUE_KEYS", "DEFAULT_RELATIONS"]
