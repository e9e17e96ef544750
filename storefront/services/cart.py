from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import ValidationError

from ..events import EventEmitter, EventType, emit_to
from ..events.models import info, success
from ..schemas.cart import CartLineItem, CartProduct, CartState
from ..schemas.catalog import ProductSummary
from .local_store import KeyValueStore

logger = logging.getLogger(__name__)

FREE_DELIVERY_THRESHOLD = Decimal("499")
DELIVERY_CHARGE = Decimal("49")


class CartStore:
    """Single owner of the device's shopping cart.

    Every mutation is written through to the local store under one key. A
    failed write is logged and swallowed: the in-memory cart stays
    authoritative for the running session.
    """

    def __init__(
        self,
        local_store: KeyValueStore,
        *,
        storage_key: str = "cart-storage",
        emitter: Optional[EventEmitter] = None,
    ) -> None:
        self.local_store = local_store
        self.storage_key = storage_key
        self.emitter = emitter
        self._items: List[CartLineItem] = []

    @property
    def items(self) -> List[CartLineItem]:
        return [item.model_copy() for item in self._items]

    def hydrate(self) -> None:
        """Load the persisted cart, starting empty when nothing usable is stored."""
        try:
            raw = self.local_store.get(self.storage_key)
        except Exception:
            logger.exception("Failed to read persisted cart %s", self.storage_key)
            return
        if raw is None:
            self._items = []
            return
        try:
            state = CartState.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cart state: %s", exc)
            self._items = []
            return
        self._items = self._merged(state.items)

    def add_item(self, product: CartProduct | ProductSummary, quantity: int = 1) -> CartLineItem:
        snapshot = product if isinstance(product, CartProduct) else CartProduct.from_product(product)
        quantity = max(int(quantity), 1)
        existing = self._find(snapshot.product_id)
        if existing is not None:
            existing.quantity += quantity
            line = existing
        else:
            line = CartLineItem(
                product_id=snapshot.product_id,
                name=snapshot.name,
                image_url=snapshot.image_url,
                slug=snapshot.slug,
                unit_price=snapshot.unit_price,
                quantity=quantity,
            )
            self._items.append(line)
        self._persist()
        emit_to(
            self.emitter,
            success(EventType.CART_ITEM_ADDED, "Added to cart", snapshot.name, product_id=snapshot.product_id),
        )
        return line.model_copy()

    def remove_item(self, product_id: str) -> None:
        line = self._find(product_id)
        if line is None:
            return
        self._items.remove(line)
        self._persist()
        emit_to(
            self.emitter,
            info(EventType.CART_ITEM_REMOVED, "Removed from cart", line.name, product_id=product_id),
        )

    def update_quantity(self, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(product_id)
            return
        line = self._find(product_id)
        if line is None:
            return
        line.quantity = int(quantity)
        self._persist()

    def clear(self) -> None:
        self._items = []
        self._persist()
        emit_to(self.emitter, info(EventType.CART_CLEARED, "Cart cleared"))

    def total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    def total_price(self) -> Decimal:
        return sum((item.line_total for item in self._items), Decimal("0"))

    def delivery_charge(self) -> Decimal:
        """Flat charge shown in the cart below the free-delivery threshold."""
        if not self._items or self.total_price() >= FREE_DELIVERY_THRESHOLD:
            return Decimal("0")
        return DELIVERY_CHARGE

    def amount_to_free_delivery(self) -> Decimal:
        if not self._items:
            return Decimal("0")
        return max(FREE_DELIVERY_THRESHOLD - self.total_price(), Decimal("0"))

    def grand_total(self) -> Decimal:
        return self.total_price() + self.delivery_charge()

    def is_empty(self) -> bool:
        return not self._items

    def quantity_of(self, product_id: str) -> int:
        line = self._find(product_id)
        return line.quantity if line is not None else 0

    def snapshot(self) -> CartState:
        return CartState(items=self.items)

    def _find(self, product_id: str) -> Optional[CartLineItem]:
        for item in self._items:
            if item.product_id == product_id:
                return item
        return None

    @staticmethod
    def _merged(items: List[CartLineItem]) -> List[CartLineItem]:
        # Older states could hold duplicate rows; fold them into one line each.
        merged: List[CartLineItem] = []
        by_id: dict[str, CartLineItem] = {}
        for item in items:
            existing = by_id.get(item.product_id)
            if existing is None:
                copy = item.model_copy()
                by_id[item.product_id] = copy
                merged.append(copy)
            else:
                existing.quantity += item.quantity
        return merged

    def _persist(self) -> None:
        payload: dict[str, Any] = self.snapshot().model_dump(mode="json")
        try:
            self.local_store.set(self.storage_key, payload)
        except Exception:
            logger.exception("Failed to persist cart %s", self.storage_key)


__all__ = ["FREE_DELIVERY_THRESHOLD", "DELIVERY_CHARGE", "CartStore"]
