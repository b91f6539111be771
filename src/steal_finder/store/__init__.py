"""Store implementations."""

from .base import SeenRecord, Store
from .json_store import JsonFileStore
from .sqlite_store import SQLiteStore

__all__ = ["JsonFileStore", "SeenRecord", "SQLiteStore", "Store"]
