"""Ledger-specific exceptions."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for errors raised by the ledger store and its collaborators."""


class InvalidAmountError(LedgerError, ValueError):
    """Raised when an amount, limit, or balance is not a finite number."""


class InsufficientFundsError(LedgerError):
    """Raised when a goal deposit would overdraw its funding source."""

    def __init__(self, source_name: str, balance: float, amount: float) -> None:
        super().__init__(f"Insufficient funds in {source_name}: {balance:.2f} < {amount:.2f}")
        self.source_name = source_name
        self.balance = balance
        self.amount = amount


class StorageError(LedgerError, OSError):
    """Raised when the persistence backend cannot read or write a record."""


class SnapshotDecodeError(StorageError):
    """Raised when a stored snapshot is not valid JSON or not an object."""
