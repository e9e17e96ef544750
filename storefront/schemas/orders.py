from __future__ import annotations

import enum
import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INDIAN_STATES = (
    "Andhra Pradesh",
    "Arunachal Pradesh",
    "Assam",
    "Bihar",
    "Chhattisgarh",
    "Goa",
    "Gujarat",
    "Haryana",
    "Himachal Pradesh",
    "Jharkhand",
    "Karnataka",
    "Kerala",
    "Madhya Pradesh",
    "Maharashtra",
    "Manipur",
    "Meghalaya",
    "Mizoram",
    "Nagaland",
    "Odisha",
    "Punjab",
    "Rajasthan",
    "Sikkim",
    "Tamil Nadu",
    "Telangana",
    "Tripura",
    "Uttar Pradesh",
    "Uttarakhand",
    "West Bengal",
    # Union territories
    "Andaman and Nicobar Islands",
    "Chandigarh",
    "Dadra and Nagar Haveli and Daman and Diu",
    "Delhi",
    "Jammu and Kashmir",
    "Ladakh",
    "Lakshadweep",
    "Puducherry",
)

_LETTERS_RE = re.compile(r"^[a-zA-Z\s]+$")
_PHONE_RE = re.compile(r"^[6-9]\d{9}$")
_PINCODE_RE = re.compile(r"^[1-9][0-9]{5}$")


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURN_REQUESTED = "return_requested"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ReturnStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


def _text_length(value: str, *, label: str, minimum: int, maximum: int) -> str:
    if len(value) < minimum:
        raise ValueError(f"{label} must be at least {minimum} characters")
    if len(value) > maximum:
        raise ValueError(f"{label} must be less than {maximum} characters")
    return value


class ShippingAddress(BaseModel):
    """Cash-on-delivery address; stored on the order with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    full_name: str = Field(alias="fullName")
    phone: str
    address: str
    city: str
    state: str
    pincode: str

    @field_validator("full_name")
    @classmethod
    def _check_full_name(cls, value: str) -> str:
        _text_length(value, label="Full name", minimum=2, maximum=100)
        if not _LETTERS_RE.match(value):
            raise ValueError("Full name can only contain letters and spaces")
        return value

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        if not _PHONE_RE.match(value):
            raise ValueError("Enter a valid 10-digit Indian mobile number")
        return value

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        return _text_length(value, label="Address", minimum=10, maximum=500)

    @field_validator("city")
    @classmethod
    def _check_city(cls, value: str) -> str:
        _text_length(value, label="City", minimum=2, maximum=50)
        if not _LETTERS_RE.match(value):
            raise ValueError("City can only contain letters")
        return value

    @field_validator("state")
    @classmethod
    def _check_state(cls, value: str) -> str:
        if not value:
            raise ValueError("Please select a state")
        if value not in INDIAN_STATES:
            raise ValueError("Please select a valid state")
        return value

    @field_validator("pincode")
    @classmethod
    def _check_pincode(cls, value: str) -> str:
        if not _PINCODE_RE.match(value):
            raise ValueError("Enter a valid 6-digit pincode")
        return value


class OrderItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    order_id: Optional[str] = None
    product_id: Optional[str] = None
    product_name: str
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)

    @field_validator("id", "order_id", "product_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return value if value is None or isinstance(value, str) else str(value)


class Order(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: Optional[str] = None
    total_amount: Decimal = Field(ge=0)
    payment_status: str = PaymentStatus.PENDING.value
    order_status: OrderStatus = OrderStatus.PENDING
    shipping_address: Dict[str, Any] = Field(default_factory=dict)
    order_items: List[OrderItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return value if value is None or isinstance(value, str) else str(value)

    @field_validator("shipping_address", mode="before")
    @classmethod
    def _null_address(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("order_items", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def item_count(self) -> int:
        return len(self.order_items)


class ReturnRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    order_id: str
    user_id: Optional[str] = None
    reason: str
    status: ReturnStatus = ReturnStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    order: Optional[Order] = None

    @field_validator("id", "order_id", "user_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return value if value is None or isinstance(value, str) else str(value)


__all__ = [
    "INDIAN_STATES",
    "OrderStatus",
    "PaymentStatus",
    "ReturnStatus",
    "ShippingAddress",
    "OrderItem",
    "Order",
    "ReturnRequest",
]
