from __future__ import annotations

from typing import Optional

from ..config import Settings, get_settings
from .base import RemoteDataStore
from .memory import InMemoryDataStore
from .postgrest import PostgrestDataStore


class RemoteStoreFactory:
    @staticmethod
    def create(backend: Optional[str] = None, *, settings: Optional[Settings] = None) -> RemoteDataStore:
        settings = settings or get_settings()
        resolved = (backend or settings.remote_backend or "postgrest").lower()

        if resolved == "postgrest":
            return PostgrestDataStore(
                url=settings.supabase_url,
                api_key=settings.supabase_key,
                timeout_seconds=settings.remote_timeout_seconds,
            )
        if resolved == "memory":
            return InMemoryDataStore()

        raise ValueError(f"Unknown remote backend: {resolved}")


def create_remote_store(settings: Optional[Settings] = None) -> RemoteDataStore:
    return RemoteStoreFactory.create(settings=settings)


__all__ = ["RemoteStoreFactory", "create_remote_store"]
