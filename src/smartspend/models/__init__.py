"""Ledger entity models and the key-value storage table."""

from .budget import Budget, BudgetPeriod
from .category import UNCATEGORIZED, Category, CategoryInput, CategoryPatch
from .goal import Goal, GoalInput, GoalPatch
from .record import StoredRecord
from .snapshot import LedgerSnapshot
from .source import Source, SourceInput, SourceKind, SourcePatch
from .transaction import Transaction, TransactionInput, TransactionPatch, TransactionType

__all__ = [
    "Budget",
    "BudgetPeriod",
    "Category",
    "CategoryInput",
    "CategoryPatch",
    "Goal",
    "GoalInput",
    "GoalPatch",
    "LedgerSnapshot",
    "Source",
    "SourceInput",
    "SourceKind",
    "SourcePatch",
    "StoredRecord",
    "Transaction",
    "TransactionInput",
    "TransactionPatch",
    "TransactionType",
    "UNCATEGORIZED",
]
