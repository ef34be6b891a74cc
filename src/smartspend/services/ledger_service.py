"""Ledger-specific helpers for filtering, summaries, and display lookups."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..models import UNCATEGORIZED, Category, Source, Transaction, TransactionType
from .budgeting import month_window


@dataclass
class LedgerFilters:
    """Filters applied to ledger listings."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category_id: Optional[str] = None
    source_id: Optional[str] = None
    text: Optional[str] = None
    txn_type: str = "all"  # income | expense | transfer | all


@dataclass
class Pagination:
    """Simple pagination parameters."""

    page: int = 1
    per_page: int = 25


def category_name(category_id: str, categories: Iterable[Category]) -> str:
    """Resolve a category id for display, falling back to "Uncategorized"."""

    for category in categories:
        if category.id == category_id:
            return category.name
    return UNCATEGORIZED


def source_name(source_id: str, sources: Iterable[Source]) -> str:
    for source in sources:
        if source.id == source_id:
            return source.name
    return "Unknown source"


def newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Sort by transaction date, most recent first."""

    return sorted(transactions, key=lambda t: t.date, reverse=True)


def filtered_transactions(
    transactions: Iterable[Transaction], filters: LedgerFilters
) -> list[Transaction]:
    """Apply the supplied filters and sort newest first."""

    needle = filters.text.strip().lower() if filters.text else None
    wanted_type = filters.txn_type.upper() if filters.txn_type and filters.txn_type != "all" else None

    results = []
    for txn in transactions:
        if filters.start_date and txn.date < filters.start_date:
            continue
        if filters.end_date and txn.date > filters.end_date:
            continue
        if filters.category_id and txn.category_id != filters.category_id:
            continue
        if filters.source_id and txn.source_id != filters.source_id:
            continue
        if wanted_type and txn.type.value != wanted_type:
            continue
        if needle and needle not in txn.note.lower():
            continue
        results.append(txn)
    return newest_first(results)


def paginate_transactions(
    txs: list[Transaction], pagination: Pagination
) -> tuple[list[Transaction], int]:
    """Return the current page of transactions and total count."""

    total = len(txs)
    page = max(1, pagination.page)
    per_page = max(1, pagination.per_page)
    start = (page - 1) * per_page
    end = start + per_page
    return txs[start:end], total


def compute_summary(transactions: Iterable[Transaction]) -> dict[str, float]:
    """Compute income, outflow, and net totals from the provided transactions."""

    income = 0.0
    expenses = 0.0
    for txn in transactions:
        if txn.type == TransactionType.INCOME:
            income += txn.amount
        else:
            expenses += txn.amount
    return {"income": income, "expenses": expenses, "net": income - expenses}


def source_history(transactions: Iterable[Transaction], source_id: str) -> list[Transaction]:
    """Transactions that touched one source, newest first."""

    return filtered_transactions(transactions, LedgerFilters(source_id=source_id))


def monthly_summary(transactions: Iterable[Transaction], *, now: datetime) -> dict[str, float]:
    """Income, outflow, and net for the calendar month containing ``now``."""

    window = month_window(now)
    return compute_summary(t for t in transactions if window.contains(t.date))


def compute_spending_by_category(
    transactions: Iterable[Transaction], categories: Iterable[Category]
) -> list[dict[str, object]]:
    """Roll up raw amount totals by category id, largest first."""

    lookup = {c.id: c.name for c in categories}
    totals: dict[str, float] = {}
    for txn in transactions:
        totals[txn.category_id] = totals.get(txn.category_id, 0.0) + txn.amount

    breakdown: list[dict[str, object]] = []
    for cat_id, total in totals.items():
        breakdown.append(
            {"category_id": cat_id, "name": lookup.get(cat_id, UNCATEGORIZED), "amount": total}
        )
    breakdown.sort(key=lambda entry: entry["amount"], reverse=True)
    return breakdown


def top_categories(
    breakdown: Iterable[dict[str, object]], limit: int = 3
) -> list[dict[str, object]]:
    """Return the top N categories from a breakdown list."""

    items = list(breakdown)
    return items[:limit]
