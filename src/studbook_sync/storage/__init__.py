"""Local record storage for studbook-sync."""

from studbook_sync.storage.base import KeyValueBackend
from studbook_sync.storage.factory import create_backend
from studbook_sync.storage.memory_backend import InMemoryBackend
from studbook_sync.storage.record_store import CollectionPusher, LocalRecordStore
from studbook_sync.storage.sqlite_backend import SQLiteBackend

__all__ = [
    "KeyValueBackend",
    "InMemoryBackend",
    "SQLiteBackend",
    "LocalRecordStore",
    "CollectionPusher",
    "create_backend",
]
