from .database import Database, get_database, reset_database
from .migrations import init_db
from .models import KeyValueEntry

__all__ = [
    "Database",
    "get_database",
    "reset_database",
    "init_db",
    "KeyValueEntry",
]
