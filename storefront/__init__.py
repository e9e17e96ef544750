"""Storefront core: cart, catalog browsing, wishlist and order workflow."""

from .app import SignedInUser, Storefront
from .config import Settings, get_settings, refresh_settings

__version__ = "0.1.0"

__all__ = ["SignedInUser", "Storefront", "Settings", "get_settings", "refresh_settings", "__version__"]
