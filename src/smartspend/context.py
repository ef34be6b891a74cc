"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelKeyValueStore
from .logging_config import get_logger
from .services.auth import CredentialGate
from .services.ledger_store import LedgerStore

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Everything a presentation layer needs, passed explicitly."""

    config: BaseConfig
    engine: Any
    session_factory: Callable[[], Any]
    storage: SQLModelKeyValueStore
    ledger: LedgerStore
    auth: CredentialGate

    def require_user(self) -> str:
        """Return the signed-in username or raise if the gate is closed."""

        if not self.auth.is_authenticated or self.auth.user is None:
            raise RuntimeError("User is not authenticated")
        return self.auth.user


def create_app_context(config: Optional[BaseConfig] = None) -> AppContext:
    """Create the engine, storage, ledger store, and credential gate."""

    if config is None:
        config = BaseConfig()

    engine, session_factory, storage = bootstrap_database(config)

    ledger = LedgerStore(storage, storage_key=config.STORAGE_KEY)
    auth = CredentialGate(storage, auth_key=config.AUTH_KEY, session_key=config.SESSION_KEY)
    if not ledger.status.healthy:
        logger.warning(
            "Ledger started in a degraded state",
            extra={"load_error": ledger.status.load_error, "load_warnings": len(ledger.status.load_warnings)},
        )

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        storage=storage,
        ledger=ledger,
        auth=auth,
    )
