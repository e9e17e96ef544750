from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .catalog import StockStatus

MAX_PRODUCT_PRICE = Decimal("10000000")
URL_MESSAGE = "Please enter a valid URL"

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)
_VALUE_ERROR_PREFIX = "Value error, "


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        raise ValueError(URL_MESSAGE) from None
    return value


def _as_amount(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def _check_text(value: Optional[str], *, label: str, limit: int, required: bool) -> Optional[str]:
    if value is None or value == "":
        if required:
            raise ValueError(f"{label} is required")
        return None
    if len(value) > limit:
        raise ValueError(f"{label} must be less than {limit} characters")
    return value


class ProductForm(BaseModel):
    """Admin product form; error messages are shown inline next to each field."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(default="", validate_default=True)
    description: Optional[str] = None
    price: Decimal = Field(default=None, validate_default=True)
    original_price: Optional[Decimal] = None
    category_id: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)
    stock_status: StockStatus = StockStatus.IN_STOCK
    meesho_link: Optional[str] = None
    featured: bool = False

    @field_validator("description", "original_price", "category_id", "meesho_link", mode="before")
    @classmethod
    def _blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _check_text(value, label="Product name", limit=200, required=True)

    @field_validator("description")
    @classmethod
    def _check_description(cls, value: Optional[str]) -> Optional[str]:
        return _check_text(value, label="Description", limit=2000, required=False)

    @field_validator("price", mode="before")
    @classmethod
    def _check_price(cls, value: Any) -> Decimal:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("Price is required")
        amount = _as_amount(value)
        if amount is None or amount <= 0:
            raise ValueError("Price must be a positive number")
        if amount > MAX_PRODUCT_PRICE:
            raise ValueError("Price must be less than ₹1,00,00,000")
        return amount

    @field_validator("original_price", mode="before")
    @classmethod
    def _check_original_price(cls, value: Any) -> Optional[Decimal]:
        if value is None:
            return None
        amount = _as_amount(value)
        if amount is None or amount < 0:
            raise ValueError("Original price must be a valid number")
        if amount > MAX_PRODUCT_PRICE:
            raise ValueError("Original price must be less than ₹1,00,00,000")
        return amount

    @field_validator("stock_status", mode="before")
    @classmethod
    def _check_stock(cls, value: Any) -> Any:
        try:
            return StockStatus(value)
        except ValueError:
            raise ValueError("Invalid stock status") from None

    @field_validator("meesho_link")
    @classmethod
    def _check_link(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)

    @field_validator("image_urls", mode="before")
    @classmethod
    def _clean_images(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [url.strip() for url in value if isinstance(url, str) and url.strip()]
        return value


class CategoryForm(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(default="", validate_default=True)
    description: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("description", "image_url", mode="before")
    @classmethod
    def _blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _check_text(value, label="Category name", limit=100, required=True)

    @field_validator("description")
    @classmethod
    def _check_description(cls, value: Optional[str]) -> Optional[str]:
        return _check_text(value, label="Description", limit=500, required=False)

    @field_validator("image_url")
    @classmethod
    def _check_image(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a pydantic error into the first message per top-level field."""
    errors: Dict[str, str] = {}
    for item in exc.errors():
        location = item.get("loc") or ("__root__",)
        name = str(location[0])
        message = str(item.get("msg", "Invalid value"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        errors.setdefault(name, message)
    return errors


__all__ = ["MAX_PRODUCT_PRICE", "URL_MESSAGE", "ProductForm", "CategoryForm", "field_errors"]
