from __future__ import annotations

from dataclasses import dataclass, field
import os

from dotenv import find_dotenv, load_dotenv


def _load_env() -> None:
    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path, override=False)


_load_env()


def _get_env(key: str, default: str | None = None) -> str | None:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


def _get_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    remote_backend: str = field(default_factory=lambda: (_get_env("REMOTE_BACKEND", "postgrest") or "postgrest").lower())
    supabase_url: str | None = field(default_factory=lambda: _get_env("SUPABASE_URL"))
    supabase_key: str | None = field(
        default_factory=lambda: _get_env("SUPABASE_ANON_KEY") or _get_env("SUPABASE_KEY")
    )
    remote_timeout_seconds: float = field(default_factory=lambda: _get_float("REMOTE_TIMEOUT_SECONDS", 15.0))

    local_store_url: str = field(default_factory=lambda: _get_env("LOCAL_STORE_URL", "sqlite:///./storefront.db"))
    cart_storage_key: str = field(default_factory=lambda: _get_env("CART_STORAGE_KEY", "cart-storage"))

    catalog_page_size: int = field(default_factory=lambda: _get_int("CATALOG_PAGE_SIZE", 12))
    price_filter_min: int = field(default_factory=lambda: _get_int("PRICE_FILTER_MIN", 0))
    price_filter_max: int = field(default_factory=lambda: _get_int("PRICE_FILTER_MAX", 5000))
    currency: str = field(default_factory=lambda: _get_env("CURRENCY", "INR") or "INR")

    log_level: str = field(default_factory=lambda: (_get_env("LOG_LEVEL", "INFO") or "INFO").upper())
    log_dir: str | None = field(default_factory=lambda: _get_env("LOG_DIR"))


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def refresh_settings() -> Settings:
    """Rebuild settings from environment variables."""
    global _settings
    _settings = Settings()
    return _settings


__all__ = ["Settings", "get_settings", "refresh_settings"]
