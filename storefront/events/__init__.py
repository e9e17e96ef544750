from .emitter import EventEmitter, emit_to
from .models import Notice
from .types import EventType, NoticeLevel

__all__ = ["EventEmitter", "emit_to", "Notice", "EventType", "NoticeLevel"]
