"""Key-value records backing the persistence layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel


class StoredRecord(SQLModel, table=True):
    """One serialized value stored under a fixed key."""

    __tablename__: ClassVar[str] = "stored_record"

    key: str = Field(primary_key=True, max_length=128)
    value: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
