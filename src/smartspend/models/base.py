"""Shared helpers for ledger entity models."""

from __future__ import annotations

from typing import TypeVar
from uuid import uuid4

from sqlmodel import SQLModel

ModelT = TypeVar("ModelT", bound=SQLModel)


def new_id() -> str:
    """Return a fresh opaque entity identifier."""

    return str(uuid4())


def apply_patch(entity: ModelT, patch: SQLModel) -> ModelT:
    """Return a validated copy of ``entity`` with the patch's explicitly set fields merged in.

    Fields left unset on the patch keep their current value; a field set to
    ``None`` on purpose is passed through and validated like any other value.
    """

    changes = patch.model_dump(exclude_unset=True)
    merged = {**entity.model_dump(), **changes}
    return type(entity).model_validate(merged)
