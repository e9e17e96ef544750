from .admin import CategoryForm, ProductForm, field_errors
from .cart import CartLineItem, CartProduct, CartState
from .catalog import (
    CatalogFilter,
    CatalogMode,
    Category,
    CategoryRef,
    ProductSummary,
    SortKey,
    StockStatus,
)
from .orders import (
    INDIAN_STATES,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    ReturnRequest,
    ReturnStatus,
    ShippingAddress,
)
from .reviews import RatingBucket, Review, ReviewDraft, ReviewSummary
from .rows import parse_row, parse_rows
from .site_settings import COUPON_SETTINGS_KEY, CouponSettings

__all__ = [
    "CategoryForm",
    "ProductForm",
    "field_errors",
    "CartLineItem",
    "CartProduct",
    "CartState",
    "CatalogFilter",
    "CatalogMode",
    "Category",
    "CategoryRef",
    "ProductSummary",
    "SortKey",
    "StockStatus",
    "INDIAN_STATES",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "ReturnRequest",
    "ReturnStatus",
    "ShippingAddress",
    "RatingBucket",
    "Review",
    "ReviewDraft",
    "ReviewSummary",
    "parse_row",
    "parse_rows",
    "COUPON_SETTINGS_KEY",
    "CouponSettings",
]
