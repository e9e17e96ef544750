from __future__ import annotations

import json
import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Sequence

import httpx

from ..config import get_settings
from ..exceptions import RemoteStoreError, RemoteStoreNotConfigured
from ..log import RemoteCallLogger
from .base import (
    QueryResult,
    RemoteDataStore,
    RemoteQuery,
    Row,
    RowFilter,
    as_row_list,
    require_match,
)


_UNESCAPED_PERCENT_RE = re.compile(r"(?<!\\)%")
_CONTENT_RANGE_RE = re.compile(r"^(?:\d+-\d+|\*)/(\d+|\*)$")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _format_filter(row_filter: RowFilter) -> str:
    if row_filter.op == "eq" and row_filter.value is None:
        return "is.null"
    if row_filter.op == "in":
        values = ",".join(_format_value(value) for value in row_filter.value)
        return f"in.({values})"
    if row_filter.op == "ilike":
        # The REST dialect uses '*' as the wildcard in URLs.
        pattern = _UNESCAPED_PERCENT_RE.sub("*", str(row_filter.value))
        return f"ilike.{pattern}"
    return f"{row_filter.op}.{_format_value(row_filter.value)}"


def parse_content_range(header: Optional[str]) -> Optional[int]:
    if not header:
        return None
    match = _CONTENT_RANGE_RE.match(header.strip())
    if not match or match.group(1) == "*":
        return None
    return int(match.group(1))


class PostgrestDataStore(RemoteDataStore):
    """Remote store speaking the hosted backend's PostgREST dialect."""

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.url = (url or settings.supabase_url or "").rstrip("/")
        self.api_key = api_key or settings.supabase_key
        timeout = timeout_seconds or settings.remote_timeout_seconds
        if not self.url:
            raise RemoteStoreNotConfigured("SUPABASE_URL is not configured")
        if not self.api_key:
            raise RemoteStoreNotConfigured("SUPABASE_ANON_KEY is not configured")
        self._access_token: Optional[str] = None
        self._client = httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            timeout=timeout,
            transport=transport,
        )

    def set_access_token(self, token: Optional[str]) -> None:
        self._access_token = token

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self, prefer: Sequence[str] = ()) -> dict[str, str]:
        headers = {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {self._access_token or self.api_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = ",".join(prefer)
        return headers

    async def select(self, query: RemoteQuery) -> QueryResult:
        params: list[tuple[str, str]] = [("select", query.columns)]
        params.extend((f.column, _format_filter(f)) for f in query.filters)
        if query.sort is not None:
            direction = "asc" if query.sort.ascending else "desc"
            params.append(("order", f"{query.sort.column}.{direction}"))
        if query.offset is not None:
            params.append(("offset", str(query.offset)))
        if query.limit is not None:
            params.append(("limit", str(query.limit)))

        prefer = ["count=exact"] if query.count else []
        response = await self._request("GET", query.table, params=params, prefer=prefer)
        rows = self._json_rows(response, query.table)
        total = parse_content_range(response.headers.get("content-range")) if query.count else None
        return QueryResult(rows=rows, total_count=total)

    async def insert(self, table: str, rows: Row | Sequence[Row]) -> List[Row]:
        payload = as_row_list(rows)
        response = await self._request(
            "POST",
            table,
            json_body=payload,
            prefer=["return=representation"],
        )
        return self._json_rows(response, table)

    async def update(self, table: str, match: Row, patch: Row) -> List[Row]:
        params = self._match_params(table, match)
        response = await self._request(
            "PATCH",
            table,
            params=params,
            json_body=patch,
            prefer=["return=representation"],
        )
        return self._json_rows(response, table)

    async def delete(self, table: str, match: Row) -> List[Row]:
        params = self._match_params(table, match)
        response = await self._request(
            "DELETE",
            table,
            params=params,
            prefer=["return=representation"],
        )
        return self._json_rows(response, table)

    def _match_params(self, table: str, match: Row) -> list[tuple[str, str]]:
        require_match(table, match)
        return [
            (column, _format_filter(RowFilter(column=column, op="eq", value=value)))
            for column, value in match.items()
        ]

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[list[tuple[str, str]]] = None,
        json_body: Any = None,
        prefer: Sequence[str] = (),
    ) -> httpx.Response:
        headers = self._headers(prefer)
        content: Optional[bytes] = None
        if json_body is not None:
            content = json.dumps(json_body, ensure_ascii=False, default=_json_default).encode("utf-8")
            headers["Content-Type"] = "application/json"
        with RemoteCallLogger(method, table) as call:
            try:
                response = await self._client.request(
                    method,
                    f"/{table}",
                    params=params,
                    content=content,
                    headers=headers,
                )
            except httpx.HTTPError as exc:
                error = RemoteStoreError(f"Request to {table} failed: {exc}", table=table)
                call.error(str(exc), trace_id=error.trace_id)
                raise error from exc

            if response.status_code >= 400:
                error = self._error_from_response(response, table)
                call.error(str(error), status_code=response.status_code, trace_id=error.trace_id)
                raise error

            call.success(response.status_code)
            return response

    @staticmethod
    def _error_from_response(response: httpx.Response, table: str) -> RemoteStoreError:
        code: Optional[str] = None
        message = response.text or f"HTTP {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message") or body.get("error_description") or message
        return RemoteStoreError(
            str(message),
            status_code=response.status_code,
            code=str(code) if code is not None else None,
            table=table,
        )

    @staticmethod
    def _json_rows(response: httpx.Response, table: str) -> List[Row]:
        if response.status_code == 204 or not response.content:
            return []
        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteStoreError(
                f"{table} returned a non-JSON body",
                status_code=response.status_code,
                table=table,
            ) from exc
        if isinstance(body, dict):
            return [body]
        if not isinstance(body, list):
            raise RemoteStoreError(f"{table} returned an unexpected payload", table=table)
        return [row for row in body if isinstance(row, dict)]


__all__ = ["PostgrestDataStore", "parse_content_range"]
