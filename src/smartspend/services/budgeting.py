"""Budgeting domain services.

Pure functions over transaction snapshots; the reference instant is always
passed in so results do not depend on the wall clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from ..models import Budget, BudgetPeriod, Transaction, TransactionType


@dataclass(slots=True, frozen=True)
class PeriodWindow:
    """Inclusive time range of one budget period."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def week_window(reference: datetime) -> PeriodWindow:
    """Sunday 00:00 through Saturday 23:59:59.999999 around ``reference``."""

    # weekday(): Monday=0 .. Sunday=6
    days_since_sunday = (reference.weekday() + 1) % 7
    start = datetime.combine(reference.date() - timedelta(days=days_since_sunday), time.min)
    end = datetime.combine(start.date() + timedelta(days=6), time.max)
    return PeriodWindow(start=start, end=end)


def month_window(reference: datetime) -> PeriodWindow:
    """The calendar month containing ``reference``."""

    start = datetime.combine(reference.date().replace(day=1), time.min)
    if start.month == 12:
        next_month = start.replace(year=start.year + 1, month=1)
    else:
        next_month = start.replace(month=start.month + 1)
    end = datetime.combine((next_month - timedelta(days=1)).date(), time.max)
    return PeriodWindow(start=start, end=end)


def period_window(period: BudgetPeriod | str, reference: datetime) -> PeriodWindow:
    if BudgetPeriod(period) == BudgetPeriod.WEEKLY:
        return week_window(reference)
    return month_window(reference)


def spend_by_category(
    transactions: Iterable[Transaction],
    *,
    window: PeriodWindow,
    category_id: Optional[str] = None,
    types: Optional[Iterable[TransactionType]] = None,
) -> dict[str, float]:
    """Sum amounts per category for transactions dated inside ``window``.

    Every transaction type counts unless ``types`` narrows it, matching how the
    budget and dashboard views total a category.
    """

    allowed = set(types) if types is not None else None
    totals: dict[str, float] = {}
    for txn in transactions:
        if category_id is not None and txn.category_id != category_id:
            continue
        if allowed is not None and txn.type not in allowed:
            continue
        if not window.contains(txn.date):
            continue
        totals[txn.category_id] = totals.get(txn.category_id, 0.0) + txn.amount
    return totals


@dataclass(slots=True)
class BudgetProgress:
    """Lightweight DTO for reporting a budget against actual spend."""

    budget: Budget
    spent: float
    window: PeriodWindow

    @property
    def limit(self) -> float:
        return self.budget.limit

    @property
    def percent(self) -> float:
        if self.budget.limit <= 0:
            return 0.0
        return max(0.0, min(self.spent / self.budget.limit * 100, 100.0))

    @property
    def is_over(self) -> bool:
        return self.budget.limit > 0 and self.spent > self.budget.limit

    @property
    def remaining(self) -> float:
        return self.budget.limit - self.spent


def budget_progress(
    budget: Budget, transactions: Iterable[Transaction], *, now: datetime
) -> BudgetProgress:
    """Spend for the budget's category in the period containing ``now``."""

    window = period_window(budget.period, now)
    totals = spend_by_category(transactions, window=window, category_id=budget.category_id)
    return BudgetProgress(budget=budget, spent=totals.get(budget.category_id, 0.0), window=window)


def active_budgets(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    *,
    now: datetime,
    period: BudgetPeriod | None = None,
) -> list[BudgetProgress]:
    """Progress for every budget with a positive limit, optionally one period only."""

    txns = list(transactions)
    wanted = BudgetPeriod(period) if period is not None else None
    return [
        budget_progress(budget, txns, now=now)
        for budget in budgets
        if budget.limit > 0 and (wanted is None or budget.period == wanted)
    ]
