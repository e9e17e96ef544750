from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.text import slugify

DEFAULT_PRICE_MIN = Decimal("0")
DEFAULT_PRICE_MAX = Decimal("5000")


class StockStatus(str, enum.Enum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"


class SortKey(str, enum.Enum):
    NEWEST = "newest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


class CatalogMode(str, enum.Enum):
    PAGED = "paged"
    INFINITE = "infinite"


def _as_str_id(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return str(value)


class CategoryRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    slug: str


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return _as_str_id(value)


class ProductSummary(BaseModel):
    """Read-only projection of a ``products`` row."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = Field(min_length=1)
    slug: str = ""
    price: Decimal = Field(ge=0)
    original_price: Optional[Decimal] = Field(default=None, ge=0)
    image_urls: List[str] = Field(default_factory=list)
    stock_status: StockStatus = StockStatus.IN_STOCK
    category_id: Optional[str] = None
    category: Optional[CategoryRef] = Field(
        default=None,
        validation_alias=AliasChoices("categories", "category"),
    )
    description: Optional[str] = None
    featured: bool = False
    created_at: Optional[datetime] = None

    @field_validator("id", "category_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return _as_str_id(value)

    @field_validator("image_urls", mode="before")
    @classmethod
    def _clean_images(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [url for url in value if isinstance(url, str) and url.strip()]
        return value

    @field_validator("stock_status", mode="before")
    @classmethod
    def _default_stock(cls, value: Any) -> Any:
        return StockStatus.IN_STOCK if value in (None, "") else value

    @field_validator("featured", mode="before")
    @classmethod
    def _null_featured(cls, value: Any) -> Any:
        return False if value is None else value

    @model_validator(mode="after")
    def _fill_slug(self) -> "ProductSummary":
        if not self.slug:
            self.slug = slugify(self.name)
        return self

    @property
    def primary_image(self) -> str:
        return self.image_urls[0] if self.image_urls else ""

    @property
    def in_stock(self) -> bool:
        return self.stock_status != StockStatus.OUT_OF_STOCK

    @property
    def discount_percent(self) -> int:
        if not self.original_price or self.original_price <= self.price:
            return 0
        return int((self.original_price - self.price) * 100 / self.original_price)


class CatalogFilter(BaseModel):
    """Filter, sort and page state shared by both result providers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    category: Optional[str] = None
    price_min: Decimal = Field(default=DEFAULT_PRICE_MIN, ge=0)
    price_max: Decimal = Field(default=DEFAULT_PRICE_MAX, ge=0)
    search_text: str = ""
    sort_key: SortKey = SortKey.NEWEST
    page: int = Field(default=1, ge=1)

    @field_validator("category", mode="before")
    @classmethod
    def _blank_category(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("search_text", mode="before")
    @classmethod
    def _strip_search(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_bounds(self) -> "CatalogFilter":
        if self.price_min > self.price_max:
            raise ValueError("price_min must not exceed price_max")
        return self

    def query_key(self) -> Tuple[Any, ...]:
        """Every field except ``page``; a change here invalidates loaded results."""
        return (self.category, self.price_min, self.price_max, self.search_text, self.sort_key)

    def with_changes(self, **changes: Any) -> "CatalogFilter":
        data = self.model_dump()
        data.update(changes)
        updated = CatalogFilter.model_validate(data)
        if updated.query_key() != self.query_key() and updated.page != 1:
            updated = updated.model_copy(update={"page": 1})
        return updated


__all__ = [
    "DEFAULT_PRICE_MIN",
    "DEFAULT_PRICE_MAX",
    "StockStatus",
    "SortKey",
    "CatalogMode",
    "CategoryRef",
    "Category",
    "ProductSummary",
    "CatalogFilter",
]
