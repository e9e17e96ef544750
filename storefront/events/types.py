from enum import Enum


class EventType(str, Enum):
    # Cart
    CART_ITEM_ADDED = "cart_item_added"
    CART_ITEM_REMOVED = "cart_item_removed"
    CART_CLEARED = "cart_cleared"

    # Catalog
    CATALOG_LOAD_FAILED = "catalog_load_failed"

    # Wishlist
    WISHLIST_ADDED = "wishlist_added"
    WISHLIST_REMOVED = "wishlist_removed"
    WISHLIST_FAILED = "wishlist_failed"

    # Preconditions
    SIGN_IN_REQUIRED = "sign_in_required"
    CART_EMPTY = "cart_empty"

    # Orders
    ORDER_PLACED = "order_placed"
    ORDER_FAILED = "order_failed"
    ORDER_STATUS_UPDATED = "order_status_updated"
    ORDERS_EXPORTED = "orders_exported"
    RETURN_REQUESTED = "return_requested"
    RETURN_STATUS_UPDATED = "return_status_updated"

    # Back office
    PRODUCT_SAVED = "product_saved"
    PRODUCT_DELETED = "product_deleted"
    CATEGORY_SAVED = "category_saved"
    CATEGORY_DELETED = "category_deleted"
    SETTINGS_SAVED = "settings_saved"
    REVIEW_SUBMITTED = "review_submitted"

    REMOTE_ERROR = "remote_error"


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
