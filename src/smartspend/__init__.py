"""SmartSpend personal finance ledger package."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .context import AppContext, create_app_context
from .services.ledger_store import LedgerStore

__all__ = ["AppContext", "BaseConfig", "DevConfig", "LedgerStore", "create_app_context"]
