from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ..events import EventEmitter, EventType, emit_to
from ..events.models import error as error_notice
from ..events.models import success
from ..exceptions import RemoteStoreError
from ..log import log_event
from ..remote.base import RemoteDataStore
from ..schemas.admin import field_errors
from ..schemas.orders import OrderStatus, PaymentStatus, ShippingAddress
from ..utils.text import short_id
from .cart import CartStore

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
ORDER_ITEMS_TABLE = "order_items"

_NON_DIGIT_RE = re.compile(r"\D")
_NON_LETTER_RE = re.compile(r"[^a-zA-Z\s]")

# Form field names as the address is submitted and stored.
_FIELD_LIMITS = {"phone": 10, "pincode": 6}
_LETTER_FIELDS = {"fullName", "city", "state"}


class CheckoutStatus(str, enum.Enum):
    PLACED = "placed"
    SIGN_IN_REQUIRED = "sign_in_required"
    EMPTY_CART = "empty_cart"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass
class CheckoutResult:
    status: CheckoutStatus
    order_id: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == CheckoutStatus.PLACED

    @property
    def display_id(self) -> str:
        return short_id(self.order_id) if self.order_id else ""


def sanitize_field(name: str, value: str) -> str:
    """Apply the per-field input restrictions of the address form."""
    value = value or ""
    if name in _FIELD_LIMITS:
        return _NON_DIGIT_RE.sub("", value)[: _FIELD_LIMITS[name]]
    if name in _LETTER_FIELDS:
        return _NON_LETTER_RE.sub("", value)
    return value


def validate_address(form: Mapping[str, Any]) -> tuple[Optional[ShippingAddress], Dict[str, str]]:
    """Return the parsed address, or ``{fieldName: message}`` for the first error per field."""
    try:
        return ShippingAddress.model_validate(dict(form)), {}
    except ValidationError as exc:
        return None, field_errors(exc)


class CheckoutService:
    """Cash-on-delivery checkout of the current cart."""

    def __init__(
        self,
        store: RemoteDataStore,
        cart: CartStore,
        *,
        emitter: Optional[EventEmitter] = None,
    ) -> None:
        self.store = store
        self.cart = cart
        self.emitter = emitter

    async def place_order(self, user_id: Optional[str], form: Mapping[str, Any]) -> CheckoutResult:
        if not user_id:
            emit_to(
                self.emitter,
                error_notice(EventType.SIGN_IN_REQUIRED, "Please sign in", "You need to be signed in to place an order."),
            )
            return CheckoutResult(CheckoutStatus.SIGN_IN_REQUIRED)
        if self.cart.is_empty():
            emit_to(
                self.emitter,
                error_notice(EventType.CART_EMPTY, "Cart is empty", "Please add items to your cart before checkout."),
            )
            return CheckoutResult(CheckoutStatus.EMPTY_CART)

        address, errors = validate_address(form)
        if address is None:
            return CheckoutResult(CheckoutStatus.INVALID, errors=errors)

        items = self.cart.items
        total = self.cart.total_price()
        try:
            created = await self.store.insert(
                ORDERS_TABLE,
                {
                    "user_id": user_id,
                    "total_amount": total,
                    "payment_status": PaymentStatus.PENDING.value,
                    "order_status": OrderStatus.PENDING.value,
                    "shipping_address": address.model_dump(by_alias=True),
                },
            )
            if not created:
                raise RemoteStoreError("Order was not returned by the backend", table=ORDERS_TABLE)
            order_id = str(created[0]["id"])
            await self.store.insert(
                ORDER_ITEMS_TABLE,
                [
                    {
                        "order_id": order_id,
                        "product_id": item.product_id,
                        "product_name": item.name,
                        "quantity": item.quantity,
                        "price": item.unit_price,
                    }
                    for item in items
                ],
            )
            await self.store.update(
                ORDERS_TABLE,
                {"id": order_id},
                {"order_status": OrderStatus.CONFIRMED.value},
            )
        except RemoteStoreError as exc:
            logger.warning("Checkout failed (trace_id=%s): %s", exc.trace_id, exc)
            message = str(exc) or "Something went wrong. Please try again."
            emit_to(self.emitter, error_notice(EventType.ORDER_FAILED, "Order failed", message, trace_id=exc.trace_id))
            return CheckoutResult(CheckoutStatus.FAILED, message=message)

        self.cart.clear()
        log_event(logger, "order_placed", order_id=order_id, lines=len(items), total=str(total))
        emit_to(
            self.emitter,
            success(EventType.ORDER_PLACED, "Order placed successfully!", f"Order ID: {short_id(order_id)}", order_id=order_id),
        )
        return CheckoutResult(CheckoutStatus.PLACED, order_id=order_id)


__all__ = [
    "ORDERS_TABLE",
    "ORDER_ITEMS_TABLE",
    "CheckoutStatus",
    "CheckoutResult",
    "sanitize_field",
    "validate_address",
    "CheckoutService",
]
