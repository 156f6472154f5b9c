"""
Ledger Store

The single owner of the transaction list and the balance.

DESIGN DECISION: The balance is never adjusted incrementally.
After every add, edit, delete or load it is recomputed from scratch as
a fold over the whole list. That costs O(n) per change, which is nothing
for a personal ledger, and it means the stored balance can never drift
away from the transactions it summarizes.

Flow of every mutation:
    validate input -> change list -> recompute balance -> save -> notify

Input is validated before anything changes, so a rejected call leaves
the ledger exactly as it was.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from src.audit import AuditLogger
from src.models.transaction import (
    InvalidAmountError,
    LedgerError,
    Transaction,
    TransactionType,
    parse_amount,
)
from src.persistence import LedgerPersistence, LoadResult
from src.services.storage import StorageError


logger = structlog.get_logger(__name__)

TransactionId = Union[UUID, str]


class LedgerChangeKind(str, Enum):
    """What happened to the ledger."""
    LOADED = "loaded"
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"


class LedgerChange(BaseModel):
    """Notification sent to subscribers after every change."""
    kind: LedgerChangeKind
    transaction: Optional[Transaction] = None
    balance: Decimal


LedgerListener = Callable[[LedgerChange], None]


class LedgerStore:
    """
    Ordered, newest-first collection of transactions plus derived balance.

    The presentation layer reads `transactions`, `balance` and
    `visible_transactions`, calls the mutation methods, and subscribes
    to changes instead of keeping its own copy of the state.
    """

    def __init__(
        self,
        persistence: Optional[LedgerPersistence] = None,
        audit_logger: Optional[AuditLogger] = None,
        initial_visible_count: int = 15,
        visible_increment: int = 10,
    ):
        if initial_visible_count < 1:
            raise ValueError("initial_visible_count must be at least 1")
        if visible_increment < 1:
            raise ValueError("visible_increment must be at least 1")

        self._persistence = persistence
        self._audit_logger = audit_logger
        self._transactions: list[Transaction] = []
        self._balance = Decimal("0")
        self._visible_count = initial_visible_count
        self._visible_increment = visible_increment
        self._listeners: list[LedgerListener] = []
        self._last_updated: Optional[datetime] = None

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def transactions(self) -> list[Transaction]:
        """Copy of all transactions, newest first."""
        return list(self._transactions)

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._last_updated

    def __len__(self) -> int:
        return len(self._transactions)

    def get(self, transaction_id: TransactionId) -> Transaction:
        """
        Look up a transaction by id.

        Raises:
            TransactionNotFoundError: If no transaction has this id
        """
        return self._transactions[self._index_of(transaction_id)]

    # =========================================================================
    # PAGINATION
    # =========================================================================

    @property
    def visible_count(self) -> int:
        """Pagination cursor. May exceed the number of transactions."""
        return self._visible_count

    @property
    def visible_transactions(self) -> list[Transaction]:
        """The most recent transactions inside the visible window."""
        return self._transactions[:min(self._visible_count, len(self._transactions))]

    @property
    def has_more(self) -> bool:
        """True if some transactions are outside the visible window."""
        return self._visible_count < len(self._transactions)

    def expand_visible(self, by: Optional[int] = None) -> int:
        """
        Grow the visible window ("show more").

        Args:
            by: How many more transactions to show.
                Defaults to the configured increment.

        Returns:
            The new cursor value
        """
        step = self._visible_increment if by is None else by
        if step < 1:
            raise ValueError(f"Window can only grow, got by={step}")
        self._visible_count += step
        return self._visible_count

    # =========================================================================
    # LOADING
    # =========================================================================

    def load(self) -> LoadResult:
        """
        Populate the ledger from persistence.

        Corrupt stored data does not raise: the ledger starts empty and
        the returned LoadResult says why.
        """
        if self._persistence is None:
            raise LedgerError("No persistence configured for this ledger")

        result = self._persistence.load_or_empty()
        if result.corrupted:
            logger.error(
                "ledger_started_empty",
                reason=result.error_message,
                backup_key=result.backup_key,
            )
        self.populate(result.transactions)
        return result

    def populate(self, transactions: Iterable[Transaction]) -> None:
        """Replace the ledger contents with already-stored transactions. Does not save."""
        self._transactions = list(transactions)
        self.recompute_balance()
        self._touch()
        self._notify(LedgerChangeKind.LOADED, None)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add(
        self,
        date: Optional[datetime],
        transaction_type: TransactionType,
        description: str,
        amount_text: str,
    ) -> Transaction:
        """
        Record a new transaction at the top of the list.

        Args:
            date: Transaction date; None means now
            transaction_type: Income, Expense or Pending
            description: Free-text label
            amount_text: Raw amount input, parsed as a decimal

        Returns:
            The created transaction

        Raises:
            InvalidAmountError: If amount_text is not a valid amount.
                The ledger is left unchanged.
        """
        amount = self._parse_amount(amount_text)

        transaction = Transaction(
            date=date or datetime.now(),
            type=transaction_type,
            description=description,
            amount=amount,
        )

        self._transactions.insert(0, transaction)
        self.recompute_balance()

        if self._audit_logger:
            self._audit_logger.log_transaction_added(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=str(transaction.amount),
                balance=str(self._balance),
            )

        self._commit(LedgerChangeKind.ADDED, transaction)
        return transaction

    def update(
        self,
        transaction_id: TransactionId,
        date: Optional[datetime],
        transaction_type: TransactionType,
        description: str,
        amount_text: str,
    ) -> Transaction:
        """
        Replace a transaction in place, keeping its id and position.

        Args:
            transaction_id: Id of the transaction to edit
            date: New date; None keeps the current one
            transaction_type: New type
            description: New description
            amount_text: New raw amount input

        Returns:
            The edited transaction

        Raises:
            InvalidAmountError: If amount_text is not a valid amount
            TransactionNotFoundError: If no transaction has this id
        """
        amount = self._parse_amount(amount_text, transaction_id)
        index = self._locate(transaction_id, "update")
        current = self._transactions[index]

        transaction = Transaction(
            id=current.id,
            date=date or current.date,
            type=transaction_type,
            description=description,
            amount=amount,
        )

        self._transactions[index] = transaction
        self.recompute_balance()

        if self._audit_logger:
            self._audit_logger.log_transaction_updated(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=str(transaction.amount),
                balance=str(self._balance),
            )

        self._commit(LedgerChangeKind.UPDATED, transaction)
        return transaction

    def remove(self, transaction_id: TransactionId) -> Transaction:
        """
        Delete a transaction.

        Returns:
            The removed transaction

        Raises:
            TransactionNotFoundError: If no transaction has this id
        """
        index = self._locate(transaction_id, "remove")
        transaction = self._transactions.pop(index)
        self.recompute_balance()

        if self._audit_logger:
            self._audit_logger.log_transaction_deleted(
                transaction_id=transaction.id,
                balance=str(self._balance),
            )

        self._commit(LedgerChangeKind.REMOVED, transaction)
        return transaction

    def recompute_balance(self) -> Decimal:
        """
        Recompute the balance from the full list.

        Income adds, Expense subtracts, Pending is ignored.
        Idempotent: calling it twice in a row gives the same result.
        """
        self._balance = sum(
            (t.signed_amount for t in self._transactions),
            Decimal("0"),
        )
        return self._balance

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """
        Register a listener called after every change.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _parse_amount(
        self,
        amount_text: str,
        transaction_id: Optional[TransactionId] = None,
    ) -> Decimal:
        try:
            return parse_amount(amount_text)
        except InvalidAmountError as e:
            if self._audit_logger:
                self._audit_logger.log_invalid_amount(
                    amount_text=str(amount_text),
                    reason=e.reason,
                    transaction_id=_as_uuid(transaction_id),
                )
            raise

    def _index_of(self, transaction_id: TransactionId) -> int:
        wanted = _as_uuid(transaction_id)
        if wanted is not None:
            for index, transaction in enumerate(self._transactions):
                if transaction.id == wanted:
                    return index
        raise TransactionNotFoundError(transaction_id)

    def _locate(self, transaction_id: TransactionId, operation: str) -> int:
        try:
            return self._index_of(transaction_id)
        except TransactionNotFoundError:
            if self._audit_logger:
                self._audit_logger.log_not_found(str(transaction_id), operation)
            raise

    def _commit(self, kind: LedgerChangeKind, transaction: Transaction) -> None:
        """Save and notify. The in-memory change stands even if the save fails."""
        self._touch()
        try:
            self._save()
        finally:
            self._notify(kind, transaction)

    def _save(self) -> None:
        if self._persistence is None:
            return
        try:
            self._persistence.save(self._transactions)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_save_failed(self._persistence.slot_key, str(e))
            raise

    def _touch(self) -> None:
        self._last_updated = datetime.now()

    def _notify(self, kind: LedgerChangeKind, transaction: Optional[Transaction]) -> None:
        change = LedgerChange(kind=kind, transaction=transaction, balance=self._balance)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                # A broken listener must not undo or mask the change
                logger.error(
                    "ledger_listener_failed",
                    kind=kind.value,
                    listener=repr(listener),
                    error=str(e),
                )


def _as_uuid(value: Optional[TransactionId]) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class TransactionNotFoundError(LedgerError):
    """No transaction with the given id."""

    def __init__(self, transaction_id: TransactionId):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")
