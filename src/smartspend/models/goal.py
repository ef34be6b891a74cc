"""Savings goal models."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import new_id


class GoalBase(SQLModel):
    title: str = ""
    target_amount: float = 0.0
    current_amount: float = 0.0
    periodic_target: Optional[float] = Field(default=None, description="Optional savings target per period")


class Goal(GoalBase):
    """A savings target with tracked progress."""

    id: str = Field(default_factory=new_id)


class GoalInput(GoalBase):
    pass


class GoalPatch(SQLModel):
    title: Optional[str] = None
    target_amount: Optional[float] = None
    current_amount: Optional[float] = None
    periodic_target: Optional[float] = None
