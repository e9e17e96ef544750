from .base import QueryResult, RemoteDataStore, RemoteQuery, Row, contains_pattern, escape_like
from .factory import RemoteStoreFactory, create_remote_store
from .memory import InMemoryDataStore
from .postgrest import PostgrestDataStore

__all__ = [
    "QueryResult",
    "RemoteDataStore",
    "RemoteQuery",
    "Row",
    "contains_pattern",
    "escape_like",
    "RemoteStoreFactory",
    "create_remote_store",
    "InMemoryDataStore",
    "PostgrestDataStore",
]
