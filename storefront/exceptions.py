from __future__ import annotations

from typing import Optional
from uuid import uuid4

_UNIQUE_VIOLATION = "23505"


def new_trace_id() -> str:
    return uuid4().hex


class TrackedError(Exception):
    def __init__(self, message: str, *, error_type: str, trace_id: str | None = None) -> None:
        self.error_type = error_type
        self.trace_id = trace_id or new_trace_id()
        super().__init__(message)

    def with_trace(self) -> str:
        return f"{self.args[0]} (trace_id={self.trace_id})"


class RemoteStoreError(TrackedError):
    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        table: Optional[str] = None,
        trace_id: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.table = table
        super().__init__(message, error_type="remote", trace_id=trace_id)

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409 or self.code == _UNIQUE_VIOLATION


class RemoteStoreNotConfigured(RemoteStoreError):
    pass


class MalformedRowError(TrackedError):
    def __init__(self, message: str, *, table: str | None = None, trace_id: str | None = None) -> None:
        self.table = table
        super().__init__(message, error_type="schema", trace_id=trace_id)


__all__ = [
    "new_trace_id",
    "TrackedError",
    "RemoteStoreError",
    "RemoteStoreNotConfigured",
    "MalformedRowError",
]
