"""Tests for LedgerStore mutations and the source balance invariant."""

from __future__ import annotations

import math
import threading
from datetime import datetime

import pytest

from smartspend.errors import InvalidAmountError
from smartspend.models import (
    CategoryInput,
    CategoryPatch,
    GoalInput,
    GoalPatch,
    SourceInput,
    SourceKind,
    SourcePatch,
    TransactionInput,
    TransactionPatch,
    TransactionType,
)

CASH = "3"
BANK_A = "1"


def _balance(store, source_id: str) -> float:
    return store.get_source(source_id).balance


def _expense(amount, source_id=CASH, category_id="food", **extra):
    return TransactionInput(amount=amount, source_id=source_id, category_id=category_id, **extra)


def _income(amount, source_id=CASH, category_id="food", **extra):
    return TransactionInput(
        amount=amount, source_id=source_id, category_id=category_id, type=TransactionType.INCOME, **extra
    )


def test_defaults_loaded_when_nothing_stored(store):
    assert [s.name for s in store.sources] == ["Bank A", "Bank B", "Cash"]
    assert store.get_balance() == pytest.approx(11500.0)
    assert store.transactions == []
    assert store.budgets == []
    assert store.goals == []
    assert store.status.loaded_defaults is True
    assert store.status.healthy


def test_cash_scenario_balances(store):
    """500 -> 380 -> 1380 -> 1280 -> 280 on the cash source."""

    assert _balance(store, CASH) == 500

    expense = store.add_transaction(_expense(120))
    assert _balance(store, CASH) == 380

    income = store.add_transaction(_income(1000))
    assert _balance(store, CASH) == 1380

    store.update_transaction(expense.id, TransactionPatch(amount=220))
    assert _balance(store, CASH) == 1280

    assert store.delete_transaction(income.id) is True
    assert _balance(store, CASH) == 280


def test_cash_scenario_with_literal_edit(store):
    """Editing the 120 expense down to 20 gives money back to the source."""

    expense = store.add_transaction(_expense(120))
    income = store.add_transaction(_income(1000))
    assert _balance(store, CASH) == 1380

    store.update_transaction(expense.id, TransactionPatch(amount=20))
    assert _balance(store, CASH) == 1480

    store.delete_transaction(income.id)
    assert _balance(store, CASH) == 480
    assert store.get_balance() == pytest.approx(11480.0)


def test_update_reconciles_amount_on_same_source(store):
    before = _balance(store, BANK_A)
    txn = store.add_transaction(_expense(100, source_id=BANK_A))
    assert _balance(store, BANK_A) == before - 100

    updated = store.update_transaction(txn.id, TransactionPatch(amount=40))

    assert updated.amount == 40
    assert _balance(store, BANK_A) == before - 40


def test_update_moves_effect_between_sources(store):
    bank_before = _balance(store, BANK_A)
    cash_before = _balance(store, CASH)
    txn = store.add_transaction(_expense(75, source_id=CASH))

    store.update_transaction(txn.id, TransactionPatch(source_id=BANK_A))

    assert _balance(store, CASH) == cash_before
    assert _balance(store, BANK_A) == bank_before - 75
    assert store.get_transaction(txn.id).source_id == BANK_A


def test_update_changing_type_flips_effect(store):
    txn = store.add_transaction(_expense(50))
    store.update_transaction(txn.id, TransactionPatch(type=TransactionType.INCOME))
    assert _balance(store, CASH) == 550


def test_update_merges_only_fields_that_were_set(store):
    txn = store.add_transaction(_expense(30, note="lunch"))

    updated = store.update_transaction(txn.id, TransactionPatch(note="team lunch"))

    assert updated.note == "team lunch"
    assert updated.amount == 30
    assert updated.category_id == "food"
    assert _balance(store, CASH) == 470



@pytest.mark.parametrize(
    "txn_type, delta_on_delete",
    [(TransactionType.EXPENSE, 50.0), (TransactionType.INCOME, -50.0)],
)
def test_delete_reverses_effect(store, txn_type, delta_on_delete):
    txn = store.add_transaction(
        TransactionInput(amount=50, source_id=CASH, category_id="food", type=txn_type)
    )
    after_add = _balance(store, CASH)

    assert store.delete_transaction(txn.id) is True

    assert _balance(store, CASH) == after_add + delta_on_delete
    assert store.get_transaction(txn.id) is None


def test_transfer_debits_like_an_expense(store):
    store.add_transaction(
        TransactionInput(amount=25, source_id=CASH, category_id="food", type=TransactionType.TRANSFER)
    )
    assert _balance(store, CASH) == 475


def test_transactions_listed_newest_inserted_first(store):
    first = store.add_transaction(_expense(1, date=datetime(2024, 5, 20)))
    second = store.add_transaction(_expense(2, date=datetime(2024, 1, 1)))
    third = store.add_transaction(_income(3))

    assert [t.id for t in store.transactions] == [third.id, second.id, first.id]
    assert [t.id for t in store.snapshot().transactions] == [third.id, second.id, first.id]


def test_negative_amount_is_stored_as_magnitude(store):
    txn = store.add_transaction(_expense(-40))
    assert txn.amount == 40
    assert _balance(store, CASH) == 460


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_amounts_rejected(store, bad):
    with pytest.raises(InvalidAmountError):
        store.add_transaction(_expense(bad))
    assert store.transactions == []
    assert _balance(store, CASH) == 500


def test_non_finite_update_leaves_state_untouched(store):
    txn = store.add_transaction(_expense(10))
    with pytest.raises(InvalidAmountError):
        store.update_transaction(txn.id, TransactionPatch(amount=math.nan))
    assert store.get_transaction(txn.id).amount == 10
    assert _balance(store, CASH) == 490


def test_unknown_ids_are_no_ops(store_factory, memory_store):
    store = store_factory(memory_store)
    writes = memory_store.writes

    assert store.update_transaction("missing", TransactionPatch(amount=5)) is None
    assert store.delete_transaction("missing") is False
    assert store.update_source("missing", SourcePatch(name="x")) is None
    assert store.update_category("missing", CategoryPatch(name="x")) is None
    assert store.delete_category("missing") is False
    assert store.update_goal("missing", GoalPatch(title="x")) is None
    assert store.delete_goal("missing") is False

    assert memory_store.writes == writes
    assert store.get_balance() == pytest.approx(11500.0)


def test_unknown_source_records_transaction_without_balance_change(store):
    txn = store.add_transaction(_expense(10, source_id="nowhere"))
    assert store.get_transaction(txn.id) is not None
    assert store.get_balance() == pytest.approx(11500.0)


def test_balance_invariant_over_mixed_sequence(store):
    opening = {s.id: s.balance for s in store.sources}
    a = store.add_transaction(_expense(120))
    b = store.add_transaction(_income(300, source_id=BANK_A))
    c = store.add_transaction(_expense(45.5, source_id="2"))
    store.update_transaction(a.id, TransactionPatch(amount=80, source_id="2"))
    store.update_transaction(b.id, TransactionPatch(type=TransactionType.EXPENSE))
    store.delete_transaction(c.id)
    store.add_transaction(
        TransactionInput(amount=12.25, source_id=CASH, category_id="transport", type=TransactionType.TRANSFER)
    )

    for source in store.sources:
        effects = sum(t.signed_amount for t in store.transactions if t.source_id == source.id)
        assert source.balance == pytest.approx(opening[source.id] + effects)


def test_returned_collections_are_copies(store):
    store.add_transaction(_expense(10))
    listing = store.transactions
    listing.clear()
    store.sources[0].balance = 0

    assert len(store.transactions) == 1
    assert store.sources[0].balance == 5000


def test_add_and_update_source(store):
    wallet = store.add_source(SourceInput(name="Wallet", balance=250, kind=SourceKind.CASH))
    assert [s.name for s in store.sources][-1] == "Wallet"
    assert store.get_balance() == pytest.approx(11750.0)

    store.add_transaction(_expense(50, source_id=wallet.id))
    corrected = store.update_source(wallet.id, SourcePatch(balance=1000))

    # Balance is taken as given, not recomputed from transactions.
    assert corrected.balance == 1000
    assert corrected.name == "Wallet"


def test_source_balance_must_be_finite(store):
    with pytest.raises(InvalidAmountError):
        store.add_source(SourceInput(name="Broken", balance=math.inf))
    with pytest.raises(InvalidAmountError):
        store.update_source(CASH, SourcePatch(balance=math.nan))


def test_category_crud_does_not_cascade(store):
    gym = store.add_category(CategoryInput(name="Gym", icon="🏋️"))
    txn = store.add_transaction(_expense(30, category_id=gym.id))
    store.set_budget(gym.id, 200, "MONTHLY")

    renamed = store.update_category(gym.id, CategoryPatch(name="Fitness"))
    assert renamed.name == "Fitness"
    assert renamed.icon == "🏋️"

    assert store.delete_category(gym.id) is True
    assert store.get_category(gym.id) is None
    assert store.get_transaction(txn.id).category_id == gym.id
    assert [b.category_id for b in store.budgets] == [gym.id]


def test_goal_crud(store):
    goal = store.add_goal(GoalInput(title="Trip", target_amount=2000))
    assert goal.current_amount == 0

    updated = store.update_goal(goal.id, GoalPatch(periodic_target=250))
    assert updated.periodic_target == 250
    assert updated.title == "Trip"

    assert store.delete_goal(goal.id) is True
    assert store.goals == []


def test_listeners_receive_snapshots_until_unsubscribed(store):
    seen = []
    unsubscribe = store.subscribe(lambda snapshot: seen.append(len(snapshot.transactions)))

    store.add_transaction(_expense(1))
    store.add_transaction(_expense(2))
    unsubscribe()
    store.add_transaction(_expense(3))

    assert seen == [1, 2]


def test_failing_listener_does_not_break_mutation(store):
    def boom(snapshot):
        raise RuntimeError("listener failed")

    store.subscribe(boom)
    txn = store.add_transaction(_expense(5))
    assert store.get_transaction(txn.id) is not None


def test_concurrent_mutations_keep_balances_consistent(store_factory, memory_store):
    store = store_factory(memory_store)

    def worker():
        for _ in range(25):
            txn = store.add_transaction(_expense(2))
            store.update_transaction(txn.id, TransactionPatch(amount=1))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store.transactions) == 100
    assert _balance(store, CASH) == 400
