"""
Transaction Model for Pocket Ledger

A transaction is one ledger event: money in, money out, or money
that is expected but not yet settled.

DESIGN DECISION: The amount is always stored as a non-negative magnitude.
The sign comes from the transaction type, so a transaction can never
disagree with itself about which direction the money moved.

Amounts are Decimal, never float. The balance is a sum of many amounts
and must not pick up binary rounding noise.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class TransactionType(str, Enum):
    """
    Closed set of transaction types.

    The values are also the persisted wire format, so they must not change.
    """
    INCOME = "Income"
    EXPENSE = "Expense"
    PENDING = "Pending"  # Recorded, but excluded from the balance

    @property
    def sign(self) -> int:
        """Direction this type moves the balance."""
        if self is TransactionType.INCOME:
            return 1
        if self is TransactionType.EXPENSE:
            return -1
        return 0


class Transaction(BaseModel):
    """
    A single recorded transaction.

    Instances are frozen. Editing a transaction means building a new
    instance that carries the same id.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID, never reused"
    )
    date: datetime = Field(
        default_factory=datetime.now,
        description="Date chosen by the user"
    )
    type: TransactionType = Field(
        ...,
        description="Income, Expense or Pending"
    )
    description: str = Field(
        default="",
        description="Free-text label"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Non-negative magnitude; sign is implied by type"
    )

    @property
    def signed_amount(self) -> Decimal:
        """Contribution of this transaction to the balance."""
        return self.amount * self.type.sign


def parse_amount(text: Any) -> Decimal:
    """
    Parse raw amount input into a Decimal.

    Accepts anything whose string form is a finite, non-negative decimal
    number. Surrounding whitespace is ignored.

    Raises:
        InvalidAmountError: If the text is empty, not a number,
            NaN/Infinity, or negative
    """
    raw = "" if text is None else str(text).strip()
    if not raw:
        raise InvalidAmountError(text, "amount is empty")

    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise InvalidAmountError(text, "not a decimal number")

    if not value.is_finite():
        raise InvalidAmountError(text, "amount must be finite")
    if value < 0:
        raise InvalidAmountError(text, "amount must not be negative")

    return value


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidAmountError(LedgerError, ValueError):
    """Amount text could not be parsed into a valid amount."""

    def __init__(self, text: Any, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid amount {text!r}: {reason}")
