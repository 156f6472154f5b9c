"""Ledger persistence package."""

from src.persistence.adapter import (
    CURRENT_SCHEMA_VERSION,
    LedgerPersistence,
    LoadResult,
    PersistenceState,
    StoredTransaction,
)

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "LedgerPersistence",
    "LoadResult",
    "PersistenceState",
    "StoredTransaction",
]
