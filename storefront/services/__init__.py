from .admin_catalog import AdminCatalogService, SaveResult
from .cart import CartStore
from .catalog import (
    CatalogBrowser,
    InfiniteScrollProvider,
    LoadState,
    OffsetPageProvider,
    ResultProvider,
    build_product_query,
)
from .checkout import CheckoutResult, CheckoutService, CheckoutStatus, sanitize_field, validate_address
from .local_store import KeyValueStore
from .orders import OrderService, order_timeline, orders_to_csv
from .returns import ReturnOutcome, ReturnService
from .reviews import ReviewOutcome, ReviewService
from .site_settings import SiteSettingsService
from .wishlist import PendingChange, ToggleOutcome, WishlistStore

__all__ = [
    "AdminCatalogService",
    "SaveResult",
    "CartStore",
    "CatalogBrowser",
    "InfiniteScrollProvider",
    "LoadState",
    "OffsetPageProvider",
    "ResultProvider",
    "build_product_query",
    "CheckoutResult",
    "CheckoutService",
    "CheckoutStatus",
    "sanitize_field",
    "validate_address",
    "KeyValueStore",
    "OrderService",
    "order_timeline",
    "orders_to_csv",
    "ReturnOutcome",
    "ReturnService",
    "ReviewOutcome",
    "ReviewService",
    "SiteSettingsService",
    "PendingChange",
    "ToggleOutcome",
    "WishlistStore",
]
