"""Ledger state engine.

``LedgerStore`` owns sources, categories, transactions, budgets, and goals.
Every source balance equals its opening balance plus the signed amounts of
the transactions that reference it; each mutation below preserves that, then
writes the whole snapshot to the key-value backend.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Union

from ..config import BaseConfig
from ..constants import SAVINGS_CATEGORY_ID
from ..domain.repositories.storage import KeyValueStore
from ..errors import InsufficientFundsError, InvalidAmountError, SnapshotDecodeError, StorageError
from ..logging_config import get_logger
from ..models import (
    Budget,
    BudgetPeriod,
    Category,
    CategoryInput,
    CategoryPatch,
    Goal,
    GoalInput,
    GoalPatch,
    LedgerSnapshot,
    Source,
    SourceInput,
    SourcePatch,
    Transaction,
    TransactionInput,
    TransactionPatch,
    TransactionType,
)
from ..models.base import apply_patch, new_id
from .snapshot import default_snapshot, encode_snapshot, read_snapshot

logger = get_logger(__name__)

Listener = Callable[[LedgerSnapshot], None]


@dataclass
class StoreStatus:
    """Persistence health exposed to the presentation layer."""

    load_error: Optional[str] = None
    save_error: Optional[str] = None
    loaded_defaults: bool = False
    load_warnings: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return self.load_error is None and self.save_error is None and not self.load_warnings


@dataclass(slots=True)
class GoalDeposit:
    """Result of an atomic goal deposit."""

    transaction: Transaction
    goal: Goal
    completed_now: bool


def _require_finite(value: float, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidAmountError(f"{label} must be a finite number, got {value!r}")
    return float(value)


def _magnitude(value: float, label: str = "amount") -> float:
    return abs(_require_finite(value, label))


class LedgerStore:
    """In-memory ledger synchronized to a key-value backend after every change."""

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        storage_key: str = BaseConfig.STORAGE_KEY,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._backend = backend
        self._storage_key = storage_key
        self._new_id = id_factory
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self.status = StoreStatus()
        self._read_failed = False

        self._transactions: dict[str, Transaction] = {}
        self._sources: dict[str, Source] = {}
        self._categories: dict[str, Category] = {}
        self._budgets: dict[str, Budget] = {}
        self._goals: dict[str, Goal] = {}
        self.reload()

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------
    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def backup_key(self) -> str:
        """Key under which a stored ledger that could not be fully read is preserved."""
        return f"{self._storage_key}.corrupt"

    def reload(self) -> None:
        """Replace in-memory state with whatever the backend currently holds.

        A missing record yields defaults. An unreadable record also yields
        defaults, is copied to ``backup_key`` first, and is reported through
        ``status.load_error``. A record that decodes with dropped items is
        copied to ``backup_key`` as well and listed in ``status.load_warnings``.
        If the backend itself cannot be read, nothing is written to
        ``storage_key`` until a later read shows what it holds.
        """

        with self._lock:
            self.status = StoreStatus()
            self._read_failed = False
            try:
                raw = self._backend.get(self._storage_key)
            except StorageError as exc:
                logger.error("Could not read stored ledger; starting from defaults", exc_info=True)
                self.status.load_error = str(exc)
                self._read_failed = True
                raw = None

            if raw is None:
                snapshot = default_snapshot()
                self.status.loaded_defaults = True
            else:
                try:
                    decoded = read_snapshot(raw)
                except SnapshotDecodeError as exc:
                    logger.error("Stored ledger is corrupt; starting from defaults", extra={"key": self._storage_key})
                    self.status.load_error = str(exc)
                    self.status.loaded_defaults = True
                    self._preserve(raw)
                    snapshot = default_snapshot()
                else:
                    snapshot = decoded.snapshot
                    if decoded.lossy:
                        logger.warning(
                            "Stored ledger had unreadable items; original kept",
                            extra={"key": self.backup_key, "dropped": len(decoded.dropped)},
                        )
                        self.status.load_warnings = decoded.dropped
                        self._preserve(raw)

            self._adopt(snapshot)
            logger.info(
                "Ledger loaded",
                extra={
                    "transactions": len(self._transactions),
                    "sources": len(self._sources),
                    "defaults": self.status.loaded_defaults,
                },
            )

    def _preserve(self, raw: str) -> bool:
        try:
            self._backend.set(self.backup_key, raw)
        except StorageError:
            logger.error("Could not back up stored ledger", exc_info=True)
            return False
        return True

    def _writable(self) -> bool:
        """Re-check a record that could not be read at load time before replacing it."""

        if not self._read_failed:
            return True
        try:
            raw = self._backend.get(self._storage_key)
        except StorageError as exc:
            self.status.save_error = str(exc)
            logger.error("Stored ledger still unreadable; change kept in memory only", exc_info=True)
            return False
        if raw is not None and not self._preserve(raw):
            self.status.save_error = f"could not back up stored ledger to {self.backup_key}"
            return False
        self._read_failed = False
        return True

    def _adopt(self, snapshot: LedgerSnapshot) -> None:
        self._transactions = {t.id: t for t in snapshot.transactions}
        self._sources = {s.id: s for s in snapshot.sources}
        self._categories = {c.id: c for c in snapshot.categories}
        self._budgets = {b.id: b for b in snapshot.budgets}
        self._goals = {g.id: g for g in snapshot.goals}

    def _commit(self) -> None:
        """Persist the full snapshot and notify listeners."""

        snapshot = self.snapshot()
        if self._writable():
            try:
                self._backend.set(self._storage_key, encode_snapshot(snapshot))
            except StorageError as exc:
                logger.error("Ledger change kept in memory but not saved", exc_info=True)
                self.status.save_error = str(exc)
            else:
                self.status.save_error = None

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Ledger listener failed")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every change; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def transactions(self) -> list[Transaction]:
        """Transactions, newest inserted first."""
        return [t.model_copy() for t in self._transactions.values()]

    @property
    def sources(self) -> list[Source]:
        return [s.model_copy() for s in self._sources.values()]

    @property
    def categories(self) -> list[Category]:
        return [c.model_copy() for c in self._categories.values()]

    @property
    def budgets(self) -> list[Budget]:
        return [b.model_copy() for b in self._budgets.values()]

    @property
    def goals(self) -> list[Goal]:
        return [g.model_copy() for g in self._goals.values()]

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                transactions=self.transactions,
                sources=self.sources,
                categories=self.categories,
                budgets=self.budgets,
                goals=self.goals,
            )

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        found = self._transactions.get(transaction_id)
        return found.model_copy() if found else None

    def get_source(self, source_id: str) -> Optional[Source]:
        found = self._sources.get(source_id)
        return found.model_copy() if found else None

    def get_category(self, category_id: str) -> Optional[Category]:
        found = self._categories.get(category_id)
        return found.model_copy() if found else None

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        found = self._goals.get(goal_id)
        return found.model_copy() if found else None

    def get_balance(self) -> float:
        """Sum of all cached source balances."""
        return sum(source.balance for source in self._sources.values())

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def _shift_balance(self, sources: dict[str, Source], source_id: str, delta: float) -> None:
        source = sources.get(source_id)
        if source is None:
            logger.warning("Unknown source; balance left unchanged", extra={"source_id": source_id})
            return
        sources[source_id] = source.model_copy(update={"balance": source.balance + delta})

    def add_transaction(self, data: TransactionInput) -> Transaction:
        """Record a transaction at the head of the list and apply its effect to its source."""

        amount = _magnitude(data.amount)
        with self._lock:
            txn = Transaction.model_validate({**data.model_dump(), "amount": amount, "id": self._new_id()})
            sources = dict(self._sources)
            self._shift_balance(sources, txn.source_id, txn.signed_amount)

            self._transactions = {txn.id: txn, **self._transactions}
            self._sources = sources
            self._commit()
            logger.info(
                "Transaction added",
                extra={"transaction_id": txn.id, "type": txn.type.value, "amount": txn.amount},
            )
            return txn.model_copy()

    def update_transaction(self, transaction_id: str, patch: TransactionPatch) -> Optional[Transaction]:
        """Revert the old effect on the old source, merge, then apply the new effect on the new source."""

        with self._lock:
            previous = self._transactions.get(transaction_id)
            if previous is None:
                logger.warning("Update ignored for unknown transaction", extra={"transaction_id": transaction_id})
                return None

            updated = apply_patch(previous, patch)
            updated = updated.model_copy(update={"amount": _magnitude(updated.amount)})

            sources = dict(self._sources)
            self._shift_balance(sources, previous.source_id, -previous.signed_amount)
            self._shift_balance(sources, updated.source_id, updated.signed_amount)

            transactions = dict(self._transactions)
            transactions[transaction_id] = updated
            self._transactions = transactions
            self._sources = sources
            self._commit()
            return updated.model_copy()

    def delete_transaction(self, transaction_id: str) -> bool:
        """Revert a transaction's effect on its source and remove it."""

        with self._lock:
            txn = self._transactions.get(transaction_id)
            if txn is None:
                logger.warning("Delete ignored for unknown transaction", extra={"transaction_id": transaction_id})
                return False

            sources = dict(self._sources)
            self._shift_balance(sources, txn.source_id, -txn.signed_amount)
            transactions = {k: v for k, v in self._transactions.items() if k != transaction_id}

            self._transactions = transactions
            self._sources = sources
            self._commit()
            return True

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------
    def add_source(self, data: SourceInput) -> Source:
        """Append a source; its balance is the opening balance."""

        _require_finite(data.balance, "balance")
        with self._lock:
            source = Source.model_validate({**data.model_dump(), "id": self._new_id()})
            self._sources = {**self._sources, source.id: source}
            self._commit()
            return source.model_copy()

    def update_source(self, source_id: str, patch: SourcePatch) -> Optional[Source]:
        """Merge fields as given. Balance is not recomputed from transactions."""

        if "balance" in patch.model_fields_set and patch.balance is not None:
            _require_finite(patch.balance, "balance")
        with self._lock:
            source = self._sources.get(source_id)
            if source is None:
                logger.warning("Update ignored for unknown source", extra={"source_id": source_id})
                return None
            updated = apply_patch(source, patch)
            self._sources = {**self._sources, source_id: updated}
            self._commit()
            return updated.model_copy()

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------
    def set_budget(
        self, category_id: str, limit: float, period: Union[BudgetPeriod, str]
    ) -> Budget:
        """Create or update the single budget for ``(category_id, period)``."""

        limit = _require_finite(limit, "limit")
        if limit < 0:
            raise InvalidAmountError(f"limit must not be negative, got {limit!r}")
        period = BudgetPeriod(period)
        with self._lock:
            existing = next(
                (b for b in self._budgets.values() if b.category_id == category_id and b.period == period),
                None,
            )
            if existing is not None:
                budget = existing.model_copy(update={"limit": limit})
            else:
                budget = Budget(id=self._new_id(), category_id=category_id, limit=limit, period=period)
            self._budgets = {**self._budgets, budget.id: budget}
            self._commit()
            return budget.model_copy()

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def add_category(self, data: CategoryInput) -> Category:
        with self._lock:
            category = Category.model_validate({**data.model_dump(), "id": self._new_id()})
            self._categories = {**self._categories, category.id: category}
            self._commit()
            return category.model_copy()

    def update_category(self, category_id: str, patch: CategoryPatch) -> Optional[Category]:
        with self._lock:
            category = self._categories.get(category_id)
            if category is None:
                logger.warning("Update ignored for unknown category", extra={"category_id": category_id})
                return None
            updated = apply_patch(category, patch)
            self._categories = {**self._categories, category_id: updated}
            self._commit()
            return updated.model_copy()

    def delete_category(self, category_id: str) -> bool:
        """Remove a category. Transactions and budgets keep the dangling id."""

        with self._lock:
            if category_id not in self._categories:
                logger.warning("Delete ignored for unknown category", extra={"category_id": category_id})
                return False
            self._categories = {k: v for k, v in self._categories.items() if k != category_id}
            self._commit()
            return True

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------
    def add_goal(self, data: GoalInput) -> Goal:
        _require_finite(data.target_amount, "target_amount")
        _require_finite(data.current_amount, "current_amount")
        with self._lock:
            goal = Goal.model_validate({**data.model_dump(), "id": self._new_id()})
            self._goals = {**self._goals, goal.id: goal}
            self._commit()
            return goal.model_copy()

    def update_goal(self, goal_id: str, patch: GoalPatch) -> Optional[Goal]:
        for name in ("target_amount", "current_amount"):
            value = getattr(patch, name)
            if name in patch.model_fields_set and value is not None:
                _require_finite(value, name)
        with self._lock:
            goal = self._goals.get(goal_id)
            if goal is None:
                logger.warning("Update ignored for unknown goal", extra={"goal_id": goal_id})
                return None
            updated = apply_patch(goal, patch)
            self._goals = {**self._goals, goal_id: updated}
            self._commit()
            return updated.model_copy()

    def delete_goal(self, goal_id: str) -> bool:
        with self._lock:
            if goal_id not in self._goals:
                logger.warning("Delete ignored for unknown goal", extra={"goal_id": goal_id})
                return False
            self._goals = {k: v for k, v in self._goals.items() if k != goal_id}
            self._commit()
            return True

    def _deposit_category(self, category_id: Optional[str]) -> str:
        if category_id is not None:
            return category_id
        if SAVINGS_CATEGORY_ID in self._categories:
            return SAVINGS_CATEGORY_ID
        return ""

    def deposit_to_goal(
        self,
        goal_id: str,
        amount: float,
        source_id: str,
        *,
        category_id: Optional[str] = None,
        when: Optional[datetime] = None,
    ) -> Optional[GoalDeposit]:
        """Move money from a source into a goal as one change.

        Records an expense against the source, debits it, and advances the
        goal's progress, with a single persistence write.

        Raises:
            InvalidAmountError: amount is not a positive finite number.
            InsufficientFundsError: the source balance is below ``amount``.
        """

        amount = _require_finite(amount, "amount")
        if amount <= 0:
            raise InvalidAmountError(f"deposit amount must be positive, got {amount!r}")

        with self._lock:
            goal = self._goals.get(goal_id)
            if goal is None:
                logger.warning("Deposit ignored for unknown goal", extra={"goal_id": goal_id})
                return None
            source = self._sources.get(source_id)
            if source is None:
                logger.warning("Deposit ignored for unknown source", extra={"source_id": source_id})
                return None
            if source.balance < amount:
                raise InsufficientFundsError(source.name, source.balance, amount)

            txn = Transaction(
                id=self._new_id(),
                amount=amount,
                source_id=source_id,
                category_id=self._deposit_category(category_id),
                date=when or self._clock(),
                note=f"Deposit to goal: {goal.title}",
                type=TransactionType.EXPENSE,
            )
            new_total = goal.current_amount + amount
            completed_now = goal.current_amount < goal.target_amount <= new_total
            updated_goal = goal.model_copy(update={"current_amount": new_total})
            sources = dict(self._sources)
            self._shift_balance(sources, source_id, txn.signed_amount)

            self._transactions = {txn.id: txn, **self._transactions}
            self._sources = sources
            self._goals = {**self._goals, goal_id: updated_goal}
            self._commit()
            logger.info(
                "Goal deposit recorded",
                extra={"goal_id": goal_id, "amount": amount, "completed": completed_now},
            )
            return GoalDeposit(
                transaction=txn.model_copy(),
                goal=updated_goal.model_copy(),
                completed_now=completed_now,
            )


__all__ = ["GoalDeposit", "LedgerStore", "StoreStatus"]
