"""
Abstract Storage Interface

DESIGN DECISION: The ledger is persisted into a single named slot of a
key-value store. We define an abstract interface for that store so we can:
1. Keep the ledger on local disk by default
2. Use in-memory storage for testing
3. Swap in Google Sheets for a copy that survives a lost laptop
4. Keep the ledger logic decoupled from where bytes end up

The interface is intentionally tiny. Values are JSON-compatible
(dicts, lists, strings, numbers, booleans, None).
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for key-value storage.

    Any storage implementation (local file, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Read the value stored under a key.

        Args:
            key: Slot name

        Returns:
            The stored value, or None if the slot is empty

        Raises:
            CorruptRecordError: If the stored bytes cannot be decoded
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Write a value under a key, replacing anything stored there.

        Args:
            key: Slot name
            value: JSON-compatible value

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptRecordError(StorageError):
    """Stored data failed decoding or schema validation."""

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        backup_key: Optional[str] = None,
    ):
        self.index = index
        self.backup_key = backup_key  # set when the backend moved the bad data aside
        if index is not None:
            message = f"record {index}: {message}"
        super().__init__(message)


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class PersistenceStateError(StorageError):
    """Persistence operation is not allowed in the current state."""
    pass
