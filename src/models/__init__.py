"""
Data Models Package

This package contains the Pydantic models used in Pocket Ledger.
All data flowing through the system must conform to these schemas.
"""

from src.models.transaction import (
    InvalidAmountError,
    LedgerError,
    Transaction,
    TransactionType,
    parse_amount,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "InvalidAmountError",
    "LedgerError",
    "Transaction",
    "TransactionType",
    "parse_amount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
