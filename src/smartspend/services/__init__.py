"""Service module exports."""

from . import (
    auth,
    budgeting,
    export_csv,
    goals,
    insights,
    ledger_service,
    ledger_store,
    reminders,
    reports,
    snapshot,
)

__all__ = [
    "auth",
    "budgeting",
    "export_csv",
    "goals",
    "insights",
    "ledger_service",
    "ledger_store",
    "reminders",
    "reports",
    "snapshot",
]
