"""Application container.

One :class:`Storefront` is constructed at application start and handed to
the presentation layer. It owns the remote store, the local store and every
store/service built on them, and is torn down with :meth:`Storefront.close`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

from .config import Settings, get_settings
from .db.database import Database
from .db.migrations import init_db
from .events import EventEmitter
from .log import setup_logging
from .remote.base import RemoteDataStore
from .remote.factory import RemoteStoreFactory
from .schemas.catalog import CatalogMode
from .services.admin_catalog import AdminCatalogService
from .services.cart import CartStore
from .services.catalog import CatalogBrowser
from .services.checkout import CheckoutResult, CheckoutService
from .services.local_store import KeyValueStore
from .services.orders import OrderService
from .services.returns import ReturnService
from .services.reviews import ReviewService
from .services.site_settings import SiteSettingsService
from .services.wishlist import WishlistStore
from .utils.text import money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedInUser:
    id: str
    email: Optional[str] = None
    access_token: Optional[str] = None


class Storefront:
    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        remote: Optional[RemoteDataStore] = None,
        database: Optional[Database] = None,
        emitter: Optional[EventEmitter] = None,
        catalog_mode: CatalogMode = CatalogMode.PAGED,
        configure_logging: bool = False,
    ) -> None:
        self.settings = settings or get_settings()
        self.emitter = emitter or EventEmitter()
        self.remote = remote or RemoteStoreFactory.create(settings=self.settings)
        self.database = database or Database(self.settings.local_store_url)
        self.local_store = KeyValueStore(self.database)
        self._configure_logging = configure_logging

        self.cart = CartStore(
            self.local_store,
            storage_key=self.settings.cart_storage_key,
            emitter=self.emitter,
        )
        self.catalog = CatalogBrowser(
            self.remote,
            mode=catalog_mode,
            emitter=self.emitter,
            settings=self.settings,
        )
        self.wishlist = WishlistStore(self.remote, emitter=self.emitter)
        self.checkout = CheckoutService(self.remote, self.cart, emitter=self.emitter)
        self.orders = OrderService(self.remote, emitter=self.emitter)
        self.returns = ReturnService(self.remote, emitter=self.emitter)
        self.reviews = ReviewService(self.remote, emitter=self.emitter)
        self.admin_catalog = AdminCatalogService(self.remote, emitter=self.emitter)
        self.site_settings = SiteSettingsService(self.remote, emitter=self.emitter)

        self.user: Optional[SignedInUser] = None
        self.is_open = False

    async def open(self) -> "Storefront":
        if self.is_open:
            return self
        if self._configure_logging:
            setup_logging(self.settings.log_dir, self.settings.log_level)
        init_db(self.database)
        self.cart.hydrate()
        self.is_open = True
        logger.info("Storefront opened with %d cart line(s)", len(self.cart.items))
        return self

    async def close(self) -> None:
        if not self.is_open:
            return
        self.is_open = False
        try:
            await self.remote.close()
        finally:
            self.database.dispose()

    async def __aenter__(self) -> "Storefront":
        return await self.open()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def sign_in(self, user_id: str, *, email: Optional[str] = None, access_token: Optional[str] = None) -> None:
        self.user = SignedInUser(id=user_id, email=email, access_token=access_token)
        self.remote.set_access_token(access_token)
        await self.wishlist.sign_in(user_id)

    def sign_out(self) -> None:
        self.user = None
        self.remote.set_access_token(None)
        self.wishlist.sign_out()

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user is not None else None

    async def place_order(self, form: Mapping[str, Any]) -> CheckoutResult:
        return await self.checkout.place_order(self.user_id, form)

    def format_price(self, amount: Decimal | int | float) -> str:
        return money(amount, self.settings.currency)


__all__ = ["SignedInUser", "Storefront"]
