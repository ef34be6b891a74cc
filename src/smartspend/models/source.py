"""Money sources (bank accounts, cash wallets) and their cached balances."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from .base import new_id


class SourceKind(str, Enum):
    BANK = "BANK"
    CASH = "CASH"
    OTHER = "OTHER"


class SourceBase(SQLModel):
    name: str = ""
    balance: float = Field(default=0.0, description="Initial balance plus signed transaction effects")
    kind: SourceKind = SourceKind.OTHER
    color_tag: str = ""


class Source(SourceBase):
    """A named money container with a running balance."""

    id: str = Field(default_factory=new_id)


class SourceInput(SourceBase):
    """Fields accepted when registering a new source; balance is the opening balance."""


class SourcePatch(SQLModel):
    """Administrative correction of a source. Balance is taken as given."""

    name: Optional[str] = None
    balance: Optional[float] = None
    kind: Optional[SourceKind] = None
    color_tag: Optional[str] = None
