"""Services package."""

from src.services.storage import (
    ConnectionError,
    CorruptRecordError,
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
    KeyValueStorageInterface,
    PersistenceStateError,
    StorageError,
)

__all__ = [
    # Storage services
    "ConnectionError",
    "CorruptRecordError",
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    "KeyValueStorageInterface",
    "PersistenceStateError",
    "StorageError",
]
