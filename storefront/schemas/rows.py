from __future__ import annotations

import logging
from typing import Any, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..exceptions import MalformedRowError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_row(model: Type[ModelT], row: Any, *, table: str) -> ModelT:
    """Validate one remote row, raising MalformedRowError when it does not fit."""
    if not isinstance(row, dict):
        raise MalformedRowError(f"{table} row is not an object", table=table)
    try:
        return model.model_validate(row)
    except ValidationError as exc:
        raise MalformedRowError(f"Malformed {table} row: {exc.error_count()} error(s)", table=table) from exc


def parse_rows(model: Type[ModelT], rows: Iterable[Any], *, table: str) -> List[ModelT]:
    """Validate remote rows, dropping (and logging) the ones that do not fit."""
    parsed: List[ModelT] = []
    for row in rows:
        try:
            parsed.append(parse_row(model, row, table=table))
        except MalformedRowError as exc:
            row_id = row.get("id") if isinstance(row, dict) else None
            logger.warning(
                "Dropping malformed %s row %s (trace_id=%s): %s",
                table,
                row_id,
                exc.trace_id,
                exc.__cause__ or exc,
            )
    return parsed


__all__ = ["parse_row", "parse_rows"]
