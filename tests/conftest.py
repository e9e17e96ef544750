import pytest

from storefront.config import Settings
from storefront.db.database import Database
from storefront.db.migrations import init_db
from storefront.events import EventEmitter
from storefront.remote.memory import InMemoryDataStore
from storefront.services.local_store import KeyValueStore


@pytest.fixture
def settings() -> Settings:
    return Settings(
        remote_backend="memory",
        supabase_url=None,
        supabase_key=None,
        catalog_page_size=12,
        price_filter_min=0,
        price_filter_max=5000,
        cart_storage_key="cart-storage",
        currency="INR",
    )


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'local.db'}")
    init_db(db)
    yield db
    db.dispose()


@pytest.fixture
def local_store(database) -> KeyValueStore:
    return KeyValueStore(database)


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def remote() -> InMemoryDataStore:
    return InMemoryDataStore()
