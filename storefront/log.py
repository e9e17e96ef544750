"""Structured JSON logging for the storefront core.

Remote calls, local persistence faults and dropped rows are logged as
single-line JSON so that a session can be replayed from the log file.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "data"):
            entry["data"] = record.data  # type: ignore[attr-defined]
        if record.exc_info and record.exc_info[1]:
            entry["error"] = str(record.exc_info[1])
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | str = logging.INFO,
) -> logging.Logger:
    """Configure structured logging for the storefront package.

    Args:
        log_dir: Directory for ``storefront.jsonl``. If None, logs to stderr only.
        level: Logging level, numeric or by name.

    Returns:
        The root 'storefront' logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("storefront")
    logger.setLevel(level)

    if logger.handlers:
        return logger

    fmt = JSONFormatter()

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path / "storefront.jsonl", encoding="utf-8")
        fh.setFormatter(fmt)
        fh.setLevel(level)
        logger.addHandler(fh)

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    sh.setLevel(logging.WARNING)
    logger.addHandler(sh)

    return logger


def log_event(logger: logging.Logger, message: str, *, level: int = logging.INFO, **data: Any) -> None:
    logger.log(level, message, extra={"data": data})


class RemoteCallLogger:
    """Context manager for logging a single remote-store request."""

    def __init__(self, method: str, table: str):
        self.method = method
        self.table = table
        self.start_time = 0.0
        self._reported = False
        self._logger = logging.getLogger("storefront.remote")

    def __enter__(self) -> RemoteCallLogger:
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc, _tb) -> None:
        if exc is not None and not self._reported:
            self.error(f"{exc_type.__name__}: {exc}")

    def success(self, status_code: int) -> None:
        self._reported = True
        elapsed = time.monotonic() - self.start_time
        self._logger.debug(
            "remote_call",
            extra={"data": {
                "method": self.method,
                "table": self.table,
                "status": status_code,
                "elapsed_s": round(elapsed, 3),
            }},
        )

    def error(self, error: str, status_code: int | None = None, trace_id: str | None = None) -> None:
        self._reported = True
        elapsed = time.monotonic() - self.start_time
        self._logger.warning(
            "remote_call_error",
            extra={"data": {
                "method": self.method,
                "table": self.table,
                "status": status_code,
                "error": error,
                "trace_id": trace_id,
                "elapsed_s": round(elapsed, 3),
            }},
        )


__all__ = ["JSONFormatter", "setup_logging", "log_event", "RemoteCallLogger"]
