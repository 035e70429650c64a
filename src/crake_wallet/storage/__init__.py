"""crake_wallet storage layer -- key-value persistence backends."""

from crake_wallet.storage.base import KeyValueStore
from crake_wallet.storage.database import SQLiteKeyValueStore, get_store
from crake_wallet.storage.memory import MemoryKeyValueStore

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "get_store",
]
