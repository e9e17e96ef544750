from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, ValidationError

from ..events import EventEmitter, EventType, emit_to
from ..events.models import error as error_notice
from ..events.models import success
from ..exceptions import RemoteStoreError
from ..remote.base import RemoteDataStore, Row
from ..schemas.admin import CategoryForm, ProductForm, field_errors
from ..schemas.catalog import Category, ProductSummary
from ..schemas.rows import parse_rows
from ..utils.text import slugify
from .catalog import CATEGORIES_TABLE, PRODUCT_COLUMNS, PRODUCTS_TABLE

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    ok: bool
    record_id: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None


def _validate(model: Type[BaseModel], data: Mapping[str, Any]) -> tuple[Optional[BaseModel], Dict[str, str]]:
    try:
        return model.model_validate(dict(data)), {}
    except ValidationError as exc:
        return None, field_errors(exc)


def product_row(form: ProductForm) -> Row:
    row = form.model_dump()
    row["slug"] = slugify(form.name)
    return row


def category_row(form: CategoryForm) -> Row:
    row = form.model_dump()
    row["slug"] = slugify(form.name)
    return row


class AdminCatalogService:
    """Product and category maintenance for the back office."""

    def __init__(self, store: RemoteDataStore, *, emitter: Optional[EventEmitter] = None) -> None:
        self.store = store
        self.emitter = emitter

    async def list_products(self) -> List[ProductSummary]:
        query = self.store.table(PRODUCTS_TABLE).select(PRODUCT_COLUMNS).order("created_at", ascending=False)
        result = await self.store.select(query)
        return parse_rows(ProductSummary, result.rows, table=PRODUCTS_TABLE)

    async def list_categories(self) -> List[Category]:
        query = self.store.table(CATEGORIES_TABLE).order("name", ascending=True)
        result = await self.store.select(query)
        return parse_rows(Category, result.rows, table=CATEGORIES_TABLE)

    async def save_product(self, data: Mapping[str, Any], *, product_id: Optional[str] = None) -> SaveResult:
        form, errors = _validate(ProductForm, data)
        if form is None:
            return SaveResult(ok=False, errors=errors)
        return await self._save(
            PRODUCTS_TABLE,
            product_row(form),  # type: ignore[arg-type]
            record_id=product_id,
            kind=EventType.PRODUCT_SAVED,
            label="Product",
        )

    async def save_category(self, data: Mapping[str, Any], *, category_id: Optional[str] = None) -> SaveResult:
        form, errors = _validate(CategoryForm, data)
        if form is None:
            return SaveResult(ok=False, errors=errors)
        return await self._save(
            CATEGORIES_TABLE,
            category_row(form),  # type: ignore[arg-type]
            record_id=category_id,
            kind=EventType.CATEGORY_SAVED,
            label="Category",
        )

    async def delete_product(self, product_id: str) -> bool:
        return await self._delete(PRODUCTS_TABLE, product_id, kind=EventType.PRODUCT_DELETED, label="Product")

    async def delete_category(self, category_id: str) -> bool:
        return await self._delete(CATEGORIES_TABLE, category_id, kind=EventType.CATEGORY_DELETED, label="Category")

    async def _save(
        self,
        table: str,
        row: Row,
        *,
        record_id: Optional[str],
        kind: EventType,
        label: str,
    ) -> SaveResult:
        try:
            if record_id is None:
                stored = await self.store.insert(table, row)
                verb = "created"
            else:
                stored = await self.store.update(table, {"id": record_id}, row)
                verb = "updated"
        except RemoteStoreError as exc:
            logger.warning("%s save failed (trace_id=%s): %s", label, exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.REMOTE_ERROR, "Error", str(exc)))
            return SaveResult(ok=False, message=str(exc))

        if record_id is not None and not stored:
            return SaveResult(ok=False, message=f"{label} not found")
        saved_id = str(stored[0]["id"]) if stored and stored[0].get("id") is not None else record_id
        emit_to(self.emitter, success(kind, f"{label} {verb}", record_id=saved_id))
        return SaveResult(ok=True, record_id=saved_id)

    async def _delete(self, table: str, record_id: str, *, kind: EventType, label: str) -> bool:
        try:
            removed = await self.store.delete(table, {"id": record_id})
        except RemoteStoreError as exc:
            logger.warning("%s delete failed (trace_id=%s): %s", label, exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.REMOTE_ERROR, "Error", str(exc)))
            return False
        if not removed:
            return False
        emit_to(self.emitter, success(kind, f"{label} deleted", record_id=record_id))
        return True


__all__ = ["SaveResult", "product_row", "category_row", "AdminCatalogService"]
