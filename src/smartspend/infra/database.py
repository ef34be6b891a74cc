"""Engine, schema, and session wiring for the key-value storage backend."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, NamedTuple

from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig
from ..logging_config import get_logger
from ..models.record import StoredRecord
from .repositories.storage import SessionFactory, SQLModelKeyValueStore

logger = get_logger(__name__)


class StorageHandles(NamedTuple):
    engine: Any
    session_factory: SessionFactory
    storage: SQLModelKeyValueStore


def create_db_engine(config: BaseConfig):
    """Create the SQLModel engine for ``config.DATABASE_URL``.

    SQLite connections wait up to ``DB_TIMEOUT`` seconds on a locked file and
    run in WAL mode so a reader never blocks the ledger writer.
    """

    engine = create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _sqlite_on_connect)
    logger.info("Database engine created", extra={"dialect": engine.dialect.name})
    return engine


def _sqlite_on_connect(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


def init_database(engine) -> None:
    """Create the ``stored_record`` table if it is missing."""

    SQLModel.metadata.create_all(engine, tables=[StoredRecord.__table__])


def create_session_factory(engine) -> SessionFactory:
    """Return a context-manager factory that commits on success and rolls back on error."""

    @contextmanager
    def factory() -> Iterator[Session]:
        session = Session(engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


def bootstrap_database(config: BaseConfig | None = None) -> StorageHandles:
    """Build the engine, ensure the schema, and wrap it in a key-value store."""

    cfg = config or BaseConfig()
    engine = create_db_engine(cfg)
    init_database(engine)
    session_factory = create_session_factory(engine)
    return StorageHandles(engine, session_factory, SQLModelKeyValueStore(session_factory))
