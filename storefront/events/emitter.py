from __future__ import annotations

import logging
import uuid
from typing import Callable, List, Optional

from .models import Notice

logger = logging.getLogger(__name__)

Listener = Callable[[Notice], None]


class EventEmitter:
    def __init__(self, *, max_events: int | None = 200) -> None:
        self._events: List[Notice] = []
        self._offset = 0
        self._max_events = max_events
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, notice: Notice) -> None:
        """Emit a notice."""
        if notice.event_id is None:
            notice.event_id = uuid.uuid4().hex
        self._events.append(notice)
        if self._max_events is not None and len(self._events) > self._max_events:
            overflow = len(self._events) - self._max_events
            del self._events[:overflow]
            self._offset += overflow
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception:
                logger.exception("Notice listener failed")
        logger.debug("Notice emitted: %s", notice.type.value)

    def get_events(self) -> List[Notice]:
        """Get all retained notices."""
        return list(self._events)

    def clear(self) -> None:
        """Clear all notices."""
        self._events.clear()
        self._offset = 0

    def events_since(self, index: int) -> tuple[List[Notice], int]:
        """Return notices since the given index and the new index."""
        if index < 0:
            index = 0
        if index < self._offset:
            index = self._offset
        relative = index - self._offset
        if relative >= len(self._events):
            return [], self._offset + len(self._events)
        return list(self._events[relative:]), self._offset + len(self._events)


def emit_to(emitter: Optional[EventEmitter], notice: Notice) -> None:
    if emitter is not None:
        emitter.emit(notice)


__all__ = ["EventEmitter", "Listener", "emit_to"]
