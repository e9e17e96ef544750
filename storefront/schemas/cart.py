from __future__ import annotations

from decimal import Decimal
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .catalog import ProductSummary

CART_STATE_VERSION = 1


class CartProduct(BaseModel):
    """Display snapshot taken when a product is added to the cart."""

    model_config = ConfigDict(extra="ignore")

    product_id: str = Field(min_length=1)
    name: str
    unit_price: Decimal = Field(ge=0)
    image_url: str = ""
    slug: str = ""

    @classmethod
    def from_product(cls, product: ProductSummary) -> "CartProduct":
        return cls(
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            image_url=product.primary_image,
            slug=product.slug,
        )


class CartLineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: str = Field(min_length=1)
    name: str
    image_url: str = ""
    slug: str = ""
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)

    @field_validator("product_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return value if value is None or isinstance(value, str) else str(value)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class CartState(BaseModel):
    """Persisted shape of the cart; totals are derived, never stored."""

    model_config = ConfigDict(extra="ignore")

    version: int = CART_STATE_VERSION
    items: List[CartLineItem] = Field(default_factory=list)


__all__ = ["CART_STATE_VERSION", "CartProduct", "CartLineItem", "CartState"]
