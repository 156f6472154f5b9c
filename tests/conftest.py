"""Shared fixtures for Pocket Ledger tests."""

import pytest

from src.audit import AuditLogger
from src.config import get_settings
from src.ledger import LedgerStore
from src.persistence import LedgerPersistence
from src.services.storage import InMemoryKeyValueStorage


class RecordingAuditLogger(AuditLogger):
    """Audit logger that keeps every event for assertions."""

    def __init__(self):
        super().__init__()
        self.events = []

    def log(self, event):
        self.events.append(event)
        return True

    @property
    def event_types(self):
        return [event.event_type.value for event in self.events]


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage():
    return InMemoryKeyValueStorage()


@pytest.fixture
def audit_logger():
    return RecordingAuditLogger()


@pytest.fixture
def persistence(storage, audit_logger):
    return LedgerPersistence(storage, audit_logger=audit_logger)


@pytest.fixture
def ledger(persistence, audit_logger):
    store = LedgerStore(persistence=persistence, audit_logger=audit_logger)
    store.load()
    return store
