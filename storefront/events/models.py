from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .types import EventType, NoticeLevel


class Notice(BaseModel):
    """A short-lived, user-facing message (the presentation layer's toast)."""

    model_config = ConfigDict(extra="allow")
    type: EventType
    level: NoticeLevel = NoticeLevel.INFO
    title: str
    description: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_payload(self) -> "Notice":
        if self.payload is None:
            self.payload = {}
        if not isinstance(self.payload, dict):
            raise ValueError("payload must be an object")
        return self

    @property
    def is_error(self) -> bool:
        return self.level == NoticeLevel.ERROR


def info(kind: EventType, title: str, description: str | None = None, **payload: Any) -> Notice:
    return Notice(type=kind, level=NoticeLevel.INFO, title=title, description=description, payload=payload)


def success(kind: EventType, title: str, description: str | None = None, **payload: Any) -> Notice:
    return Notice(type=kind, level=NoticeLevel.SUCCESS, title=title, description=description, payload=payload)


def error(kind: EventType, title: str, description: str | None = None, **payload: Any) -> Notice:
    return Notice(type=kind, level=NoticeLevel.ERROR, title=title, description=description, payload=payload)
