"""Ledger category definitions."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import new_id

UNCATEGORIZED = "Uncategorized"


class CategoryBase(SQLModel):
    name: str = ""
    icon: str = "💰"
    color_tag: str = "#94a3b8"


class Category(CategoryBase):
    """Transaction category used for budgeting and reporting."""

    id: str = Field(default_factory=new_id)


class CategoryInput(CategoryBase):
    pass


class CategoryPatch(SQLModel):
    name: Optional[str] = None
    icon: Optional[str] = None
    color_tag: Optional[str] = None
