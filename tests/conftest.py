"""Pytest configuration and shared fixtures for SmartSpend tests.

Each test gets its own temporary SQLite file behind the real key-value store,
so ledger, credential, and reminder code is exercised without touching the
application's data directory.
"""

from __future__ import annotations

import itertools
import tempfile
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel, create_engine

from smartspend.errors import StorageError
from smartspend.infra.repositories import SQLModelKeyValueStore
from smartspend.models import StoredRecord  # noqa: F401  registers the table
from smartspend.services.ledger_store import LedgerStore

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test."""

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching ``infra.database.create_session_factory``."""

    @contextmanager
    def factory():
        session = Session(db_engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


@pytest.fixture
def storage(session_factory) -> SQLModelKeyValueStore:
    return SQLModelKeyValueStore(session_factory)


# =============================================================================
# Ledger Fixtures
# =============================================================================


class FixedClock:
    """Deterministic clock; each call advances one minute."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + timedelta(minutes=1)
        return value


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 5, 15, 9, 0))


@pytest.fixture
def store_factory(storage, clock):
    """Build ledger stores over the shared test storage with sequential ids."""

    counter = itertools.count(1)

    def _create(backend=None) -> LedgerStore:
        return LedgerStore(
            backend if backend is not None else storage,
            id_factory=lambda: f"id-{next(counter)}",
            clock=clock,
        )

    return _create


@pytest.fixture
def store(store_factory) -> LedgerStore:
    """A fresh ledger seeded with the built-in sources and categories."""

    return store_factory()


class MemoryStore:
    """Dict-backed key-value store with switchable failures."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    def get(self, key: str):
        if self.fail_reads:
            raise StorageError(f"read of {key!r} failed")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError(f"write of {key!r} failed")
        self.writes += 1
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Configuration rooted in a temporary data directory with no API key."""

    from smartspend.config import BaseConfig

    monkeypatch.setenv("SMARTSPEND_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("SMARTSPEND_DATABASE_URL", raising=False)
    monkeypatch.delenv("SMARTSPEND_STORAGE_KEY", raising=False)
    monkeypatch.delenv("SMARTSPEND_DB_TIMEOUT", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    return BaseConfig()
