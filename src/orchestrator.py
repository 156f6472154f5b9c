"""
Main Orchestrator for Pocket Ledger

Ties the components together:
    settings -> storage backend -> persistence adapter -> ledger store

and performs the one startup load.

DESIGN DECISION: The presentation layer never builds these pieces itself.
It asks for a ready, loaded LedgerStore and talks only to that.
"""

import logging
import sys
from typing import Optional

from src.audit import AuditLogger
from src.config import LedgerSettings, get_settings
from src.ledger import LedgerStore
from src.persistence import LedgerPersistence
from src.services.storage import (
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
    KeyValueStorageInterface,
)
from src.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStorage,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )


def create_storage(
    ledger_settings: Optional[LedgerSettings] = None,
) -> KeyValueStorageInterface:
    """
    Build the storage backend selected in settings.

    Returns:
        A key-value storage implementation
    """
    ledger_settings = ledger_settings or get_settings().ledger

    if ledger_settings.storage_backend == "memory":
        return InMemoryKeyValueStorage()
    if ledger_settings.storage_backend == "google_sheets":
        return GoogleSheetsKeyValueStorage(GoogleSheetsClient())
    return JsonFileKeyValueStorage(ledger_settings.data_file)


def create_ledger_store(
    storage: Optional[KeyValueStorageInterface] = None,
    ledger_settings: Optional[LedgerSettings] = None,
    audit_logger: Optional[AuditLogger] = None,
    load: bool = True,
) -> LedgerStore:
    """
    Factory function to create a ready-to-use ledger.

    Args:
        storage: Storage backend. Built from settings if not given.
        ledger_settings: Ledger settings. Loaded from the environment if not given.
        audit_logger: Audit logger. A local one is created if not given.
        load: Whether to perform the startup load now.

    Returns:
        The ledger store, loaded unless load=False
    """
    ledger_settings = ledger_settings or get_settings().ledger
    audit_logger = audit_logger or AuditLogger()
    if storage is None:
        storage = create_storage(ledger_settings)

    persistence = LedgerPersistence(
        storage=storage,
        slot_key=ledger_settings.slot_key,
        audit_logger=audit_logger,
    )
    store = LedgerStore(
        persistence=persistence,
        audit_logger=audit_logger,
        initial_visible_count=ledger_settings.initial_visible_count,
        visible_increment=ledger_settings.visible_increment,
    )

    if load:
        store.load()

    return store
