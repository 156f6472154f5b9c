"""
Storage Services Package

Provides the abstract key-value interface and its implementations.
The local JSON file is the default backend; Google Sheets is optional.
"""

from src.services.storage.interface import (
    ConnectionError,
    CorruptRecordError,
    KeyValueStorageInterface,
    PersistenceStateError,
    StorageError,
)
from src.services.storage.local import (
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
)

__all__ = [
    # Interface
    "KeyValueStorageInterface",
    # Exceptions
    "ConnectionError",
    "CorruptRecordError",
    "PersistenceStateError",
    "StorageError",
    # Local implementations
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
]
