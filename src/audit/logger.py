"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Complete traceability of the balance
2. Debugging capability when stored data goes bad
3. A record of rejected input

The audit logger:
- Is synchronous, like the rest of the ledger
- Never raises: a broken log sink must not break a ledger mutation
"""

from typing import Optional
from uuid import UUID

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Writes every event to the structured local log at the level
    matching its severity.
    """

    def __init__(self, logger_name: str = "pocket_ledger.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            structlog.get_logger(__name__).error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

        return True

    def log_transaction_added(
        self,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        balance: str,
    ) -> None:
        """Log a new transaction."""
        self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            balance=balance,
        ))

    def log_transaction_updated(
        self,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        balance: str,
    ) -> None:
        """Log an edited transaction."""
        self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            balance=balance,
        ))

    def log_transaction_deleted(
        self,
        transaction_id: UUID,
        balance: str,
    ) -> None:
        """Log a deleted transaction."""
        self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            balance=balance,
        ))

    def log_invalid_amount(
        self,
        amount_text: str,
        reason: str,
        transaction_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected amount input."""
        self.log(AuditEventBuilder.invalid_amount_rejected(
            amount_text=amount_text,
            reason=reason,
            transaction_id=transaction_id,
        ))

    def log_not_found(self, transaction_id: str, operation: str) -> None:
        """Log an operation on an unknown transaction id."""
        self.log(AuditEventBuilder.transaction_not_found(
            transaction_id=transaction_id,
            operation=operation,
        ))

    def log_ledger_loaded(
        self,
        slot_key: str,
        count: int,
        schema_version: int,
    ) -> None:
        """Log a successful startup load."""
        self.log(AuditEventBuilder.ledger_loaded(
            slot_key=slot_key,
            count=count,
            schema_version=schema_version,
        ))

    def log_ledger_saved(self, slot_key: str, count: int) -> None:
        """Log a ledger save."""
        self.log(AuditEventBuilder.ledger_saved(slot_key=slot_key, count=count))

    def log_load_corrupt(
        self,
        slot_key: str,
        error_message: str,
        backup_key: Optional[str] = None,
    ) -> None:
        """Log a corrupt stored ledger."""
        self.log(AuditEventBuilder.ledger_load_corrupt(
            slot_key=slot_key,
            error_message=error_message,
            backup_key=backup_key,
        ))

    def log_save_failed(self, slot_key: str, error_message: str) -> None:
        """Log a failed save."""
        self.log(AuditEventBuilder.save_failed(
            slot_key=slot_key,
            error_message=error_message,
        ))
