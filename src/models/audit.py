"""
Audit Models for Pocket Ledger

Every change to the ledger, every rejected input and every load/save
is recorded as an audit event. This provides:
1. Traceability of what happened to the balance and when
2. Debugging information when persisted data turns out to be corrupt
3. A way to reconstruct history from the log alone

DESIGN DECISION: Audit events are write-only. They are logged, never edited.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Rejected operations
    INVALID_AMOUNT_REJECTED = "invalid_amount_rejected"
    TRANSACTION_NOT_FOUND = "transaction_not_found"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_SAVED = "ledger_saved"
    LEDGER_LOAD_CORRUPT = "ledger_load_corrupt"
    SAVE_FAILED = "save_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # What entity is this about?
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the transaction this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx.id, "Income", "100", "100")
        event = AuditEventBuilder.ledger_saved("transactions", 12)
    """

    @staticmethod
    def transaction_added(
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        balance: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_id=transaction_id,
            description=f"{transaction_type} of {amount} added",
            details={
                "type": transaction_type,
                "amount": amount,
                "balance": balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        balance: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_id=transaction_id,
            description=f"Transaction edited: now {transaction_type} of {amount}",
            details={
                "type": transaction_type,
                "amount": amount,
                "balance": balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        balance: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_id=transaction_id,
            description="Transaction deleted",
            details={
                "balance": balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def invalid_amount_rejected(
        amount_text: str,
        reason: str,
        transaction_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVALID_AMOUNT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_id=transaction_id,
            description="Amount input rejected",
            details={
                "amount_text": amount_text,
                "reason": reason,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_not_found(
        transaction_id: str,
        operation: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            description=f"Cannot {operation}: no transaction {transaction_id}",
            details={
                "transaction_id": transaction_id,
                "operation": operation,
            },
        )

    @staticmethod
    def ledger_loaded(
        slot_key: str,
        count: int,
        schema_version: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            description=f"Loaded {count} transactions from '{slot_key}'",
            details={
                "slot_key": slot_key,
                "count": count,
                "schema_version": schema_version,
            },
        )

    @staticmethod
    def ledger_saved(
        slot_key: str,
        count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            severity=AuditSeverity.DEBUG,
            description=f"Saved {count} transactions to '{slot_key}'",
            details={
                "slot_key": slot_key,
                "count": count,
            },
        )

    @staticmethod
    def ledger_load_corrupt(
        slot_key: str,
        error_message: str,
        backup_key: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOAD_CORRUPT,
            severity=AuditSeverity.ERROR,
            description=f"Stored ledger in '{slot_key}' is corrupt, starting empty",
            error_message=error_message,
            details={
                "slot_key": slot_key,
                "backup_key": backup_key,
            },
        )

    @staticmethod
    def save_failed(
        slot_key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Failed to save ledger to '{slot_key}'",
            error_message=error_message,
            details={
                "slot_key": slot_key,
            },
        )
