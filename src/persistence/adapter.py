"""
Ledger Persistence Adapter

Moves the ledger between memory and one named slot of a key-value store.

DESIGN DECISION: Every save rewrites the whole slot. The ledger is small,
and a full overwrite means the stored copy is always a consistent snapshot
of the list the user last saw.

Stored layout (schema version 2):

    {
        "schema_version": 2,
        "saved_at": "2024-12-01T10:30:00",
        "transactions": [
            {"id": "...", "date": "2024-12-01T09:00:00", "type": "Income",
             "description": "Salary", "amount": "100.00"},
            ...
        ]
    }

Amounts are written as decimal strings so every Decimal the ledger accepts
comes back digit for digit. Older layouts wrote amounts as JSON numbers and
are still read:

- version 1: the same document with numeric amounts
- version 0: a bare list of records, what the first version of the app wrote

Both are upgraded on the next save.

Loading NEVER coerces bad data into something plausible. An unknown type,
a number where a decimal string belongs, or a missing field makes the whole
load fail with CorruptRecordError.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Sequence
from uuid import UUID, uuid4

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from src.audit import AuditLogger
from src.models.transaction import Transaction, TransactionType
from src.services.storage import (
    CorruptRecordError,
    KeyValueStorageInterface,
    PersistenceStateError,
    StorageError,
)


CURRENT_SCHEMA_VERSION = 2
NUMERIC_AMOUNT_SCHEMA_VERSION = 1
LEGACY_SCHEMA_VERSION = 0

logger = structlog.get_logger(__name__)


class PersistenceState(str, Enum):
    """Lifecycle of the adapter. The only transition is UNLOADED -> LOADED."""
    UNLOADED = "unloaded"
    LOADED = "loaded"


class StoredTransaction(BaseModel):
    """
    Schema of one persisted transaction record.

    Strict where a wrong shape would otherwise be silently converted:
    the description must be a string, and the amount a decimal string
    (or a real JSON number in layouts before version 2). Validate with
    context={"numeric_amounts": True} for the older layouts.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[UUID] = None
    date: datetime
    type: TransactionType
    description: str = Field(..., strict=True)
    amount: Decimal = Field(..., ge=0, allow_inf_nan=False)

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount_shape(cls, value: Any, info: ValidationInfo) -> Any:
        if info.context and info.context.get("numeric_amounts"):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError("amount must be a JSON number")
            return Decimal(str(value))
        if not isinstance(value, str):
            raise ValueError("amount must be a decimal string")
        return value

    @staticmethod
    def record_for(transaction: Transaction) -> dict[str, Any]:
        """Serialize a transaction to a flat JSON-compatible record."""
        return {
            "id": str(transaction.id),
            "date": transaction.date.isoformat(),
            "type": transaction.type.value,
            "description": transaction.description,
            "amount": str(transaction.amount),
        }

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=self.id or uuid4(),
            date=self.date,
            type=self.type,
            description=self.description,
            amount=self.amount,
        )


class LoadResult(BaseModel):
    """
    Outcome of a startup load.

    Either the stored transactions, or an empty list together with the
    reason the stored data was rejected.
    """
    transactions: list[Transaction] = Field(default_factory=list)
    schema_version: Optional[int] = None
    corrupted: bool = False
    error_message: Optional[str] = None
    backup_key: Optional[str] = None


class LedgerPersistence:
    """
    Saves and loads the ledger through a key-value storage backend.

    The adapter must be loaded exactly once before the first save,
    which stops an empty in-memory ledger from overwriting real data.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        slot_key: str = "transactions",
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._slot_key = slot_key
        self._audit_logger = audit_logger
        self._state = PersistenceState.UNLOADED

    @property
    def state(self) -> PersistenceState:
        return self._state

    @property
    def slot_key(self) -> str:
        return self._slot_key

    @property
    def backup_key(self) -> str:
        """Slot a corrupt blob is moved to before it can be overwritten."""
        return f"{self._slot_key}.corrupt"

    def save(self, transactions: Sequence[Transaction]) -> None:
        """
        Overwrite the slot with the given transactions, in order.

        Raises:
            PersistenceStateError: If called before load
            StorageError: If the backend write fails
        """
        if self._state is not PersistenceState.LOADED:
            raise PersistenceStateError("Cannot save before the ledger has been loaded")

        document = {
            "schema_version": CURRENT_SCHEMA_VERSION,
            "saved_at": datetime.now().isoformat(),
            "transactions": [
                StoredTransaction.record_for(t) for t in transactions
            ],
        }
        self._storage.set(self._slot_key, document)

        if self._audit_logger:
            self._audit_logger.log_ledger_saved(self._slot_key, len(transactions))

    def load(self) -> list[Transaction]:
        """
        Read and validate the stored ledger.

        An empty slot is the normal first-run state and yields [].

        Raises:
            PersistenceStateError: If the ledger was already loaded
            CorruptRecordError: If any stored record fails validation
        """
        self._ensure_unloaded()
        raw = self._storage.get(self._slot_key)
        version, transactions = self._decode(raw)
        self._state = PersistenceState.LOADED

        if self._audit_logger:
            self._audit_logger.log_ledger_loaded(
                self._slot_key, len(transactions), version
            )
        return transactions

    def load_or_empty(self) -> LoadResult:
        """
        Load the ledger, downgrading corruption to an empty ledger.

        The corrupt blob is copied to the backup slot first so the next
        save cannot destroy it. Storage errors other than corruption
        still propagate.
        """
        self._ensure_unloaded()
        raw = None

        try:
            raw = self._storage.get(self._slot_key)
            version, transactions = self._decode(raw)
        except CorruptRecordError as e:
            backup_key = self._backup(raw) if raw is not None else e.backup_key
            self._state = PersistenceState.LOADED
            if self._audit_logger:
                self._audit_logger.log_load_corrupt(self._slot_key, str(e), backup_key)
            return LoadResult(
                corrupted=True,
                error_message=str(e),
                backup_key=backup_key,
            )

        self._state = PersistenceState.LOADED
        if self._audit_logger:
            self._audit_logger.log_ledger_loaded(
                self._slot_key, len(transactions), version
            )
        return LoadResult(transactions=transactions, schema_version=version)

    def _ensure_unloaded(self) -> None:
        if self._state is not PersistenceState.UNLOADED:
            raise PersistenceStateError("Ledger has already been loaded")

    def _backup(self, raw: Any) -> Optional[str]:
        try:
            self._storage.set(self.backup_key, raw)
        except StorageError as e:
            logger.warning("corrupt_ledger_backup_failed", slot_key=self.backup_key, error=str(e))
            return None
        return self.backup_key

    def _decode(self, raw: Any) -> tuple[int, list[Transaction]]:
        """Validate a raw slot value. Returns (schema_version, transactions)."""
        if raw is None:
            return CURRENT_SCHEMA_VERSION, []

        if isinstance(raw, list):
            version = LEGACY_SCHEMA_VERSION
            records = raw
        elif isinstance(raw, dict):
            version = raw.get("schema_version")
            if not isinstance(version, int) or isinstance(version, bool):
                raise CorruptRecordError(f"schema_version must be an integer, got {version!r}")
            if version > CURRENT_SCHEMA_VERSION or version < 1:
                raise CorruptRecordError(f"unsupported schema_version {version}")
            records = raw.get("transactions")
            if not isinstance(records, list):
                raise CorruptRecordError("'transactions' must be a list")
        else:
            raise CorruptRecordError(
                f"slot holds {type(raw).__name__}, expected a document or a list"
            )

        context = {"numeric_amounts": version <= NUMERIC_AMOUNT_SCHEMA_VERSION}
        transactions = []
        seen_ids: set[UUID] = set()
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise CorruptRecordError(
                    f"expected an object, got {type(record).__name__}", index=index
                )
            try:
                transaction = StoredTransaction.model_validate(
                    record, context=context
                ).to_transaction()
            except ValidationError as e:
                fields = ", ".join(
                    ".".join(str(part) for part in error["loc"]) or "record"
                    for error in e.errors()
                )
                raise CorruptRecordError(f"invalid field(s): {fields}", index=index)

            if transaction.id in seen_ids:
                raise CorruptRecordError(f"duplicate id {transaction.id}", index=index)
            seen_ids.add(transaction.id)
            transactions.append(transaction)

        return version, transactions
