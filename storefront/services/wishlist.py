from __future__ import annotations

import enum
import logging
from typing import Dict, FrozenSet, List, Optional, Set

from ..events import EventEmitter, EventType, emit_to
from ..events.models import error as error_notice
from ..events.models import info, success
from ..exceptions import RemoteStoreError
from ..remote.base import RemoteDataStore
from ..schemas.catalog import ProductSummary
from ..schemas.rows import parse_rows
from .catalog import PRODUCT_COLUMNS, PRODUCTS_TABLE

logger = logging.getLogger(__name__)

WISHLISTS_TABLE = "wishlists"


class ToggleOutcome(str, enum.Enum):
    ADDED = "added"
    REMOVED = "removed"
    SIGN_IN_REQUIRED = "sign_in_required"
    IGNORED = "ignored"
    FAILED = "failed"


class PendingChange(str, enum.Enum):
    ADD = "pending_add"
    REMOVE = "pending_remove"


class WishlistStore:
    """The signed-in user's saved product ids.

    Toggles are applied to the local view first and rolled back if the
    remote write fails. While a toggle for an id is pending, further toggles
    for that id are ignored. Across devices the last write to the remote
    table wins; :meth:`refresh` replaces the local view rather than merging.
    """

    def __init__(self, store: RemoteDataStore, *, emitter: Optional[EventEmitter] = None) -> None:
        self.store = store
        self.emitter = emitter
        self._user_id: Optional[str] = None
        self._ids: Set[str] = set()
        self._pending: Dict[str, PendingChange] = {}
        # Write sequence per id whose toggle settled; lets a refresh that was
        # already in flight keep those outcomes.
        self._write_seq = 0
        self._settled: Dict[str, int] = {}
        # Bumped on every sign-in/sign-out so late responses for a previous
        # user never touch the current view.
        self._session = 0
        self.loaded = False

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def product_ids(self) -> FrozenSet[str]:
        return frozenset(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def is_member(self, product_id: str) -> bool:
        return product_id in self._ids

    def is_pending(self, product_id: str) -> bool:
        return product_id in self._pending

    def pending_change(self, product_id: str) -> Optional[PendingChange]:
        return self._pending.get(product_id)

    async def sign_in(self, user_id: str) -> bool:
        self._session += 1
        self._user_id = user_id
        self._ids = set()
        self._pending = {}
        self._settled = {}
        self.loaded = False
        return await self.refresh()

    def sign_out(self) -> None:
        self._session += 1
        self._user_id = None
        self._ids = set()
        self._pending = {}
        self._settled = {}
        self.loaded = False

    async def refresh(self) -> bool:
        """Replace the local view with the remote rows for the current user."""
        if self._user_id is None:
            return False
        session = self._session
        started = self._write_seq
        query = self.store.table(WISHLISTS_TABLE).select("product_id").eq("user_id", self._user_id)
        try:
            result = await self.store.select(query)
        except RemoteStoreError as exc:
            logger.warning("Wishlist refresh failed (trace_id=%s): %s", exc.trace_id, exc)
            emit_to(self.emitter, error_notice(EventType.WISHLIST_FAILED, "Could not load wishlist", str(exc)))
            return False
        if session != self._session:
            return False
        ids = {str(row["product_id"]) for row in result.rows if row.get("product_id") is not None}
        for product_id, seq in self._settled.items():
            if seq > started:
                if product_id in self._ids:
                    ids.add(product_id)
                else:
                    ids.discard(product_id)
        # Keep optimistic state for ids whose write has not resolved yet.
        for product_id, change in self._pending.items():
            if change == PendingChange.ADD:
                ids.add(product_id)
            else:
                ids.discard(product_id)
        self._ids = ids
        self.loaded = True
        return True

    async def toggle(self, product_id: str) -> ToggleOutcome:
        if self._user_id is None:
            emit_to(
                self.emitter,
                info(EventType.SIGN_IN_REQUIRED, "Please sign in", "Sign in to save items to your wishlist."),
            )
            return ToggleOutcome.SIGN_IN_REQUIRED
        if product_id in self._pending:
            return ToggleOutcome.IGNORED

        user_id = self._user_id
        session = self._session
        was_member = product_id in self._ids
        self._pending[product_id] = PendingChange.REMOVE if was_member else PendingChange.ADD
        if was_member:
            self._ids.discard(product_id)
        else:
            self._ids.add(product_id)

        try:
            if was_member:
                await self.store.delete(WISHLISTS_TABLE, {"user_id": user_id, "product_id": product_id})
            else:
                await self._insert(user_id, product_id)
        except RemoteStoreError as exc:
            if session == self._session:
                self._pending.pop(product_id, None)
                if was_member:
                    self._ids.add(product_id)
                else:
                    self._ids.discard(product_id)
                self._settle(product_id)
            action = "remove from" if was_member else "add to"
            logger.warning(
                "Wishlist %s failed for %s (trace_id=%s): %s",
                "delete" if was_member else "insert",
                product_id,
                exc.trace_id,
                exc,
            )
            emit_to(
                self.emitter,
                error_notice(EventType.WISHLIST_FAILED, "Error", f"Failed to {action} wishlist.", product_id=product_id),
            )
            return ToggleOutcome.FAILED

        if session == self._session:
            self._pending.pop(product_id, None)
            self._settle(product_id)
        if was_member:
            emit_to(
                self.emitter,
                info(EventType.WISHLIST_REMOVED, "Removed from wishlist", "Product removed from your wishlist.", product_id=product_id),
            )
            return ToggleOutcome.REMOVED
        emit_to(
            self.emitter,
            success(EventType.WISHLIST_ADDED, "Added to wishlist", "Product saved for later.", product_id=product_id),
        )
        return ToggleOutcome.ADDED

    def _settle(self, product_id: str) -> None:
        self._write_seq += 1
        self._settled[product_id] = self._write_seq

    async def _insert(self, user_id: str, product_id: str) -> None:
        try:
            await self.store.insert(WISHLISTS_TABLE, {"user_id": user_id, "product_id": product_id})
        except RemoteStoreError as exc:
            # Already saved from another session: the row we wanted exists.
            if not exc.is_conflict:
                raise
            logger.debug("Wishlist row for %s already present", product_id)

    async def products(self) -> List[ProductSummary]:
        """The saved products themselves, for the wishlist page."""
        if not self._ids:
            return []
        query = self.store.table(PRODUCTS_TABLE).select(PRODUCT_COLUMNS).in_("id", sorted(self._ids))
        result = await self.store.select(query)
        return parse_rows(ProductSummary, result.rows, table=PRODUCTS_TABLE)


__all__ = ["WISHLISTS_TABLE", "ToggleOutcome", "PendingChange", "WishlistStore"]
