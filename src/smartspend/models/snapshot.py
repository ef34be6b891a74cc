"""Whole-ledger snapshot exchanged with persistence and read-only consumers."""

from __future__ import annotations

from sqlmodel import Field, SQLModel

from .budget import Budget
from .category import Category
from .goal import Goal
from .source import Source
from .transaction import Transaction


class LedgerSnapshot(SQLModel):
    """All five ledger collections at one instant.

    Transactions are ordered newest-inserted first.
    """

    transactions: list[Transaction] = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)

    @property
    def total_balance(self) -> float:
        return sum(source.balance for source in self.sources)
