"""Ledger state package."""

from src.ledger.store import (
    LedgerChange,
    LedgerChangeKind,
    LedgerListener,
    LedgerStore,
    TransactionNotFoundError,
)

__all__ = [
    "LedgerChange",
    "LedgerChangeKind",
    "LedgerListener",
    "LedgerStore",
    "TransactionNotFoundError",
]
