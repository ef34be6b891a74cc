"""SQLModel implementation of the key-value store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, ContextManager, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...errors import StorageError
from ...models.record import StoredRecord

SessionFactory = Callable[[], ContextManager[Session]]


class SQLModelKeyValueStore:
    """Stores each value as one ``stored_record`` row."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        try:
            with self.session_factory() as session:
                record = session.exec(select(StoredRecord).where(StoredRecord.key == key)).first()
                return record.value if record else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {key!r}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        try:
            with self.session_factory() as session:
                record = session.exec(select(StoredRecord).where(StoredRecord.key == key)).first()
                if record:
                    record.value = value
                    record.updated_at = datetime.now(timezone.utc)
                else:
                    record = StoredRecord(key=key, value=value)
                session.add(record)
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to write {key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            with self.session_factory() as session:
                record = session.exec(select(StoredRecord).where(StoredRecord.key == key)).first()
                if record:
                    session.delete(record)
                    session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to delete {key!r}: {exc}") from exc


__all__ = ["SQLModelKeyValueStore"]
