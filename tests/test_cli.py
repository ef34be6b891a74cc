"""Tests for the click command-line interface."""

from __future__ import annotations

import json
import logging
from zipfile import is_zipfile

import pytest
from click.testing import CliRunner

from smartspend.cli import cli
from smartspend.context import create_app_context
from smartspend.models import GoalInput


@pytest.fixture
def app(config):
    context = create_app_context(config)
    yield context
    context.engine.dispose()


@pytest.fixture
def invoke(app):
    runner = CliRunner()

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, list(args), obj=app, **kwargs)

    return _invoke


@pytest.fixture
def signed_in(invoke):
    result = invoke("register", "--username", "alice", "--password", "pw")
    assert result.exit_code == 0, result.output
    return invoke


def test_ledger_commands_require_sign_in(invoke):
    result = invoke("balance")
    assert result.exit_code == 1
    assert "smartspend register" in result.output


def test_register_prompts_for_credentials(invoke, app):
    result = invoke("register", input="alice\npw\npw\n")
    assert result.exit_code == 0, result.output
    assert "Welcome, alice." in result.output
    assert app.require_user() == "alice"


def test_login_and_logout(signed_in, app):
    assert signed_in("logout").exit_code == 0
    assert app.auth.is_authenticated is False

    bad = signed_in("login", "--username", "alice", "--password", "nope")
    assert bad.exit_code == 1
    assert "Invalid username or password" in bad.output

    assert signed_in("login", "--username", "alice", "--password", "pw").exit_code == 0
    assert app.auth.user == "alice"


def test_add_balance_history_delete(signed_in, app):
    added = signed_in("add", "--source", "3", "--category", "food", "--note", "noodles", "--", "-120")
    assert added.exit_code == 0, added.output
    assert "Recorded expense 120.00" in added.output

    balance = signed_in("balance")
    assert "380.00" in balance.output
    assert "11,380.00" in balance.output

    history = signed_in("history", "--source", "3")
    assert "noodles" in history.output
    assert "Food & Dining" in history.output

    txn_id = app.ledger.transactions[0].id
    assert signed_in("delete", txn_id).exit_code == 0
    assert app.ledger.get_source("3").balance == 500
    assert signed_in("delete", txn_id).exit_code == 1


def test_positive_amount_is_income(signed_in, app):
    result = signed_in("add", "250", "--source", "1", "--category", "housing")
    assert "Recorded income 250.00" in result.output
    assert app.ledger.get_source("1").balance == 5250


def test_edit_updates_amount(signed_in, app):
    signed_in("add", "--source", "3", "--category", "food", "--", "-100")
    txn_id = app.ledger.transactions[0].id

    result = signed_in("edit", txn_id, "--amount", "40")

    assert result.exit_code == 0, result.output
    assert app.ledger.get_source("3").balance == 460
    assert signed_in("edit", "missing", "--note", "x").exit_code == 1


def test_budgets(signed_in, app):
    assert "No budgets set." in signed_in("budgets").output

    first = signed_in("set-budget", "food", "300", "--period", "weekly")
    signed_in("set-budget", "food", "350", "--period", "weekly")
    assert first.exit_code == 0, first.output
    assert len(app.ledger.budgets) == 1

    listing = signed_in("budgets", "--period", "weekly")
    assert "Food & Dining" in listing.output
    assert "350.00" in listing.output

    assert signed_in("set-budget", "food", "--", "-5").exit_code == 1


def test_deposit_reports_completion(signed_in, app):
    goal = app.ledger.add_goal(GoalInput(title="Phone", target_amount=1000, current_amount=950))

    result = signed_in("deposit", goal.id, "50", "--source", "1")

    assert result.exit_code == 0, result.output
    assert "Goal reached!" in result.output
    assert app.ledger.get_source("1").balance == 4950

    broke = signed_in("deposit", goal.id, "900", "--source", "3")
    assert broke.exit_code == 1
    assert "Insufficient funds" in broke.output


def test_export_writes_zip(signed_in, tmp_path):
    signed_in("add", "--source", "3", "--category", "food", "--", "-12")
    result = signed_in("export", str(tmp_path / "out"))
    assert result.exit_code == 0, result.output
    archives = list((tmp_path / "out").glob("smartspend_export_*.zip"))
    assert len(archives) == 1
    assert is_zipfile(archives[0])


def test_insights_without_api_key(signed_in):
    result = signed_in("insights")
    assert result.exit_code == 0
    assert "No insight available." in result.output


def test_reminder_settings(invoke):
    assert "Daily reminder off at 21:00" in invoke("reminder").output
    assert "Daily reminder on at 07:30" in invoke("reminder", "--on", "--time", "07:30").output
    assert "Daily reminder on at 07:30" in invoke("reminder").output
    assert invoke("reminder", "--time", "7pm").exit_code == 1


def test_goal_commands(signed_in, app):
    added = signed_in("goal", "add", "Trip", "2000", "--periodic", "250")
    assert added.exit_code == 0, added.output
    trip = app.ledger.goals[0]
    assert (trip.title, trip.target_amount, trip.periodic_target) == ("Trip", 2000, 250)

    assert signed_in("goal", "edit", trip.id, "--current", "500").exit_code == 0
    listing = signed_in("goal", "list")
    assert "Trip" in listing.output
    assert "(25%)" in listing.output

    assert signed_in("goal", "delete", trip.id).exit_code == 0
    assert "No goals yet." in signed_in("goal", "list").output
    assert signed_in("goal", "edit", trip.id, "--title", "x").exit_code == 1
    assert signed_in("goal", "add", "Bad", "inf").exit_code == 1


def test_source_commands(signed_in, app):
    added = signed_in("source", "add", "Wallet", "--balance", "250", "--kind", "cash")
    assert added.exit_code == 0, added.output
    wallet = app.ledger.sources[-1]
    assert (wallet.name, wallet.balance, wallet.kind.value) == ("Wallet", 250, "CASH")

    edited = signed_in("source", "edit", wallet.id, "--name", "Pocket", "--balance", "90")
    assert edited.exit_code == 0, edited.output
    assert "Pocket: 90.00" in edited.output
    assert app.ledger.get_source(wallet.id).kind.value == "CASH"
    assert signed_in("source", "edit", "missing", "--name", "x").exit_code == 1


def test_category_commands(signed_in, app):
    added = signed_in("category", "add", "Gym", "--icon", "G")
    assert added.exit_code == 0, added.output
    gym = app.ledger.categories[-1]
    assert "Gym" in signed_in("category", "list").output

    assert signed_in("category", "edit", gym.id, "--name", "Fitness").exit_code == 0
    assert app.ledger.get_category(gym.id).name == "Fitness"
    assert app.ledger.get_category(gym.id).icon == "G"

    signed_in("add", "--source", "3", "--category", gym.id, "--", "-15")
    assert signed_in("category", "delete", gym.id).exit_code == 0
    assert "Uncategorized" in signed_in("history").output
    assert signed_in("category", "delete", gym.id).exit_code == 1


def test_unreadable_items_are_reported(signed_in, app):
    app.storage.set(app.config.STORAGE_KEY, '{"version": 1, "goals": [7]}')
    app.ledger.reload()

    result = signed_in("balance")

    assert result.exit_code == 0
    assert f"kept under {app.ledger.backup_key}" in result.output


def test_logging_is_configured_before_the_ledger_loads(config, monkeypatch):
    import smartspend.cli as cli_module

    opened = []

    def tracking_context(cfg):
        context = create_app_context(cfg)
        opened.append(context)
        return context

    monkeypatch.setattr(cli_module, "create_app_context", tracking_context)
    try:
        result = CliRunner().invoke(cli, ["reminder"])
        assert result.exit_code == 0, result.output
    finally:
        root = logging.getLogger("smartspend")
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        for context in opened:
            context.engine.dispose()

    log_file = config.DATA_DIR / "logs" / "smartspend.log"
    messages = [json.loads(line)["message"] for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert messages[0] == "Logging initialized"
    assert "Ledger loaded" in messages
