"""Budgeting models."""

from __future__ import annotations

from enum import Enum

from sqlmodel import Field, SQLModel

from .base import new_id


class BudgetPeriod(str, Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class Budget(SQLModel):
    """A spending limit for a category over a recurring period.

    At most one budget exists per ``(category_id, period)`` pair; the store's
    ``set_budget`` is the only path that creates them.
    """

    id: str = Field(default_factory=new_id)
    category_id: str = ""
    limit: float = 0.0
    period: BudgetPeriod = BudgetPeriod.MONTHLY
