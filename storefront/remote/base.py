from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence


FILTER_OPS = {"eq", "gte", "lte", "ilike", "in"}

Row = Dict[str, Any]


@dataclass(slots=True)
class RowFilter:
    column: str
    op: str
    value: Any


@dataclass(slots=True)
class SortOrder:
    column: str
    ascending: bool = True


@dataclass
class RemoteQuery:
    """Declarative read against one remote table.

    Builder methods mutate the query and return it so calls can be chained
    the same way the hosted backend's client library reads.
    """

    table: str
    columns: str = "*"
    filters: List[RowFilter] = field(default_factory=list)
    sort: Optional[SortOrder] = None
    offset: Optional[int] = None
    limit: Optional[int] = None
    count: bool = False

    def select(self, columns: str) -> "RemoteQuery":
        self.columns = columns or "*"
        return self

    def _add(self, column: str, op: str, value: Any) -> "RemoteQuery":
        if op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {op}")
        self.filters.append(RowFilter(column=column, op=op, value=value))
        return self

    def eq(self, column: str, value: Any) -> "RemoteQuery":
        return self._add(column, "eq", value)

    def gte(self, column: str, value: Any) -> "RemoteQuery":
        return self._add(column, "gte", value)

    def lte(self, column: str, value: Any) -> "RemoteQuery":
        return self._add(column, "lte", value)

    def ilike(self, column: str, pattern: str) -> "RemoteQuery":
        return self._add(column, "ilike", pattern)

    def in_(self, column: str, values: Iterable[Any]) -> "RemoteQuery":
        return self._add(column, "in", list(values))

    def order(self, column: str, *, ascending: bool = True) -> "RemoteQuery":
        self.sort = SortOrder(column=column, ascending=ascending)
        return self

    def range(self, offset: int, limit: int) -> "RemoteQuery":
        if offset < 0:
            raise ValueError("offset must be >= 0")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.offset = offset
        self.limit = limit
        return self

    def with_count(self) -> "RemoteQuery":
        self.count = True
        return self


@dataclass
class QueryResult:
    rows: List[Row]
    total_count: Optional[int] = None

    def __len__(self) -> int:
        return len(self.rows)


def escape_like(text: str) -> str:
    """Make ``text`` match literally inside a LIKE pattern.

    ``*`` is the wildcard in the REST dialect's URLs and has no escape
    there, so every backend matches it as a single character instead.
    """
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace("*", "_")


def contains_pattern(text: str) -> str:
    """LIKE pattern matching ``text`` anywhere in the column."""
    return f"%{escape_like(text)}%"


class RemoteDataStore(ABC):
    """Query/mutation surface of the hosted backend."""

    def table(self, name: str) -> RemoteQuery:
        return RemoteQuery(table=name)

    @abstractmethod
    async def select(self, query: RemoteQuery) -> QueryResult:
        raise NotImplementedError

    @abstractmethod
    async def insert(self, table: str, rows: Row | Sequence[Row]) -> List[Row]:
        """Insert one or more rows and return them as stored."""
        raise NotImplementedError

    @abstractmethod
    async def update(self, table: str, match: Row, patch: Row) -> List[Row]:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, table: str, match: Row) -> List[Row]:
        raise NotImplementedError

    async def select_one(self, query: RemoteQuery) -> Optional[Row]:
        result = await self.select(query)
        return result.rows[0] if result.rows else None

    def set_access_token(self, token: Optional[str]) -> None:
        """Scope subsequent calls to a signed-in user (no-op by default)."""

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> "RemoteDataStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def require_match(table: str, match: Row) -> Row:
    if not match:
        raise ValueError(f"Refusing to mutate every row of {table}: empty match")
    return match


def as_row_list(rows: Row | Sequence[Row]) -> List[Row]:
    if isinstance(rows, dict):
        return [dict(rows)]
    return [dict(row) for row in rows]


__all__ = [
    "FILTER_OPS",
    "Row",
    "RowFilter",
    "SortOrder",
    "RemoteQuery",
    "QueryResult",
    "RemoteDataStore",
    "escape_like",
    "contains_pattern",
    "require_match",
    "as_row_list",
]
