"""Ledger transaction models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from .base import new_id


class TransactionType(str, Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    # Debits the source like an expense; there is no crediting side yet.
    TRANSFER = "TRANSFER"


def _local_naive(value: datetime) -> datetime:
    """Convert aware timestamps to naive local time so all dates compare cleanly."""

    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class TransactionBase(SQLModel):
    amount: float = Field(default=0.0, description="Non-negative magnitude; direction comes from type")
    source_id: str = ""
    category_id: str = ""
    date: datetime = Field(default_factory=datetime.now)
    note: str = ""
    type: TransactionType = TransactionType.EXPENSE

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: datetime) -> datetime:
        return _local_naive(value)

    @property
    def signed_amount(self) -> float:
        """Balance delta this transaction contributes to its source."""

        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class Transaction(TransactionBase):
    """A single recorded money movement affecting exactly one source."""

    id: str = Field(default_factory=new_id)


class TransactionInput(TransactionBase):
    """Fields accepted by ``LedgerStore.add_transaction``."""

    @classmethod
    def from_signed_amount(cls, amount: float, **fields: Any) -> "TransactionInput":
        """Build an input from a signed amount: negative is an expense, otherwise income."""

        txn_type = TransactionType.EXPENSE if amount < 0 else TransactionType.INCOME
        return cls(amount=abs(amount), type=txn_type, **fields)


class TransactionPatch(SQLModel):
    """Partial update; only fields explicitly set are merged."""

    amount: Optional[float] = None
    source_id: Optional[str] = None
    category_id: Optional[str] = None
    date: Optional[datetime] = None
    note: Optional[str] = None
    type: Optional[TransactionType] = None
