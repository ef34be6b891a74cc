"""Command-line front end for the SmartSpend ledger."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from .config import BaseConfig
from .context import AppContext, create_app_context
from .errors import LedgerError
from .logging_config import setup_logging
from .models import (
    BudgetPeriod,
    CategoryInput,
    CategoryPatch,
    GoalInput,
    GoalPatch,
    SourceInput,
    SourceKind,
    SourcePatch,
    TransactionInput,
    TransactionPatch,
)
from .services.budgeting import active_budgets
from .services.export_csv import run_export
from .services.goals import goal_progress
from .services.insights import analyze_finances
from .services.ledger_service import (
    LedgerFilters,
    category_name,
    filtered_transactions,
    source_history,
    source_name,
)
from .services.ledger_store import LedgerStore
from .services.reminders import ReminderSettings, load_reminder_settings, save_reminder_settings


def _app(ctx: click.Context) -> AppContext:
    return ctx.find_object(AppContext)


def _ledger(ctx: click.Context) -> LedgerStore:
    """Return the ledger once the credential gate is open."""

    app = _app(ctx)
    if not app.auth.is_authenticated:
        hint = "smartspend login" if app.auth.has_account else "smartspend register"
        raise click.ClickException(f"Not signed in. Run `{hint}` first.")
    status = app.ledger.status
    if status.load_error:
        click.echo(f"Warning: stored ledger could not be loaded ({status.load_error}).", err=True)
    elif status.load_warnings:
        click.echo(
            f"Warning: {len(status.load_warnings)} stored item(s) could not be read; "
            f"the original record is kept under {app.ledger.backup_key}.",
            err=True,
        )
    return app.ledger


def _report_save(ledger: LedgerStore) -> None:
    if ledger.status.save_error:
        click.echo(f"Warning: change not saved ({ledger.status.save_error}).", err=True)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Track spending against your bank and cash sources."""

    if ctx.obj is None:
        config = BaseConfig()
        setup_logging(config)
        ctx.obj = create_app_context(config)


@cli.command()
@click.option("--username", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_context
def register(ctx: click.Context, username: str, password: str) -> None:
    """Create the local profile and sign in."""

    try:
        _app(ctx).auth.register(username, password)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Welcome, {username.strip()}.")


@cli.command()
@click.option("--username", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
def login(ctx: click.Context, username: str, password: str) -> None:
    """Sign in to the local profile."""

    if not _app(ctx).auth.login(username, password):
        raise click.ClickException("Invalid username or password.")
    click.echo("Signed in.")


@cli.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Sign out."""

    _app(ctx).auth.logout()
    click.echo("Signed out.")


@cli.command()
@click.pass_context
def balance(ctx: click.Context) -> None:
    """Show every source balance and the total."""

    ledger = _ledger(ctx)
    for source in ledger.sources:
        click.echo(f"{source.id:<38} {source.name:<20} {source.kind.value:<6} {source.balance:>12,.2f}")
    click.echo(f"{'Total':<66} {ledger.get_balance():>12,.2f}")


@cli.command()
@click.option("--limit", default=10, show_default=True, type=int)
@click.option("--source", "source_id", default=None, help="Only this source id.")
@click.pass_context
def history(ctx: click.Context, limit: int, source_id: Optional[str]) -> None:
    """List recent transactions, newest first."""

    ledger = _ledger(ctx)
    snapshot = ledger.snapshot()
    if source_id:
        txns = source_history(snapshot.transactions, source_id)
    else:
        txns = filtered_transactions(snapshot.transactions, LedgerFilters())
    if not txns:
        click.echo("No transactions yet.")
        return
    for txn in txns[:limit]:
        click.echo(
            f"{txn.id}  {txn.date:%Y-%m-%d}  {txn.signed_amount:>10,.2f}  "
            f"{category_name(txn.category_id, snapshot.categories):<16} "
            f"{source_name(txn.source_id, snapshot.sources):<10} {txn.note}"
        )


@cli.command()
@click.argument("amount", type=float)
@click.option("--source", "source_id", required=True, help="Source id.")
@click.option("--category", "category_id", required=True, help="Category id.")
@click.option("--note", default="")
@click.option("--date", "occurred", type=click.DateTime(), default=None)
@click.pass_context
def add(
    ctx: click.Context,
    amount: float,
    source_id: str,
    category_id: str,
    note: str,
    occurred: Optional[datetime],
) -> None:
    """Record a transaction; a negative AMOUNT is an expense."""

    ledger = _ledger(ctx)
    fields = {"source_id": source_id, "category_id": category_id, "note": note}
    if occurred is not None:
        fields["date"] = occurred
    try:
        txn = ledger.add_transaction(TransactionInput.from_signed_amount(amount, **fields))
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    _report_save(ledger)
    click.echo(f"Recorded {txn.type.value.lower()} {txn.amount:,.2f} ({txn.id}).")


@cli.command()
@click.argument("transaction_id")
@click.option("--amount", type=float, default=None)
@click.option("--note", default=None)
@click.pass_context
def edit(ctx: click.Context, transaction_id: str, amount: Optional[float], note: Optional[str]) -> None:
    """Change the amount or note of a transaction."""

    ledger = _ledger(ctx)
    changes = {}
    if amount is not None:
        changes["amount"] = amount
    if note is not None:
        changes["note"] = note
    try:
        updated = ledger.update_transaction(transaction_id, TransactionPatch(**changes))
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    if updated is None:
        raise click.ClickException(f"No transaction {transaction_id}.")
    _report_save(ledger)
    click.echo(f"Updated {transaction_id}.")


@cli.command()
@click.argument("transaction_id")
@click.pass_context
def delete(ctx: click.Context, transaction_id: str) -> None:
    """Delete a transaction and restore its source balance."""

    ledger = _ledger(ctx)
    if not ledger.delete_transaction(transaction_id):
        raise click.ClickException(f"No transaction {transaction_id}.")
    _report_save(ledger)
    click.echo(f"Deleted {transaction_id}.")


@cli.command("set-budget")
@click.argument("category_id")
@click.argument("limit", type=float)
@click.option("--period", type=click.Choice(["monthly", "weekly"]), default="monthly", show_default=True)
@click.pass_context
def set_budget(ctx: click.Context, category_id: str, limit: float, period: str) -> None:
    """Set the spending limit for a category."""

    ledger = _ledger(ctx)
    try:
        budget = ledger.set_budget(category_id, limit, BudgetPeriod(period.upper()))
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    _report_save(ledger)
    click.echo(f"{budget.period.value.title()} budget for {category_id}: {budget.limit:,.2f}")


@cli.command()
@click.option("--period", type=click.Choice(["monthly", "weekly"]), default=None)
@click.pass_context
def budgets(ctx: click.Context, period: Optional[str]) -> None:
    """Show spending against each budget for the current period."""

    ledger = _ledger(ctx)
    snapshot = ledger.snapshot()
    rows = active_budgets(
        snapshot.budgets,
        snapshot.transactions,
        now=datetime.now(),
        period=BudgetPeriod(period.upper()) if period else None,
    )
    if not rows:
        click.echo("No budgets set.")
        return
    for row in rows:
        flag = " OVER" if row.is_over else ""
        click.echo(
            f"{category_name(row.budget.category_id, snapshot.categories):<18} "
            f"{row.budget.period.value:<8} {row.spent:>10,.2f} / {row.limit:,.2f} "
            f"({row.percent:.0f}%){flag}"
        )


def _given(**options) -> dict:
    return {name: value for name, value in options.items() if value is not None}


@cli.group()
def goal() -> None:
    """Manage savings goals."""


@goal.command("list")
@click.pass_context
def goal_list(ctx: click.Context) -> None:
    """Show every goal with its progress."""

    goals = _ledger(ctx).goals
    if not goals:
        click.echo("No goals yet.")
        return
    for item in goals:
        progress = goal_progress(item)
        click.echo(
            f"{item.id}  {item.title:<20} {item.current_amount:>10,.2f} / {item.target_amount:,.2f} "
            f"({progress.percent:.0f}%)"
        )


@goal.command("add")
@click.argument("title")
@click.argument("target", type=float)
@click.option("--current", type=float, default=0.0, show_default=True)
@click.option("--periodic", type=float, default=None, help="Savings target per period.")
@click.pass_context
def goal_add(ctx: click.Context, title: str, target: float, current: float, periodic: Optional[float]) -> None:
    """Create a savings goal."""

    ledger = _ledger(ctx)
    try:
        created = ledger.add_goal(
            GoalInput(title=title, target_amount=target, current_amount=current, periodic_target=periodic)
        )
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    _report_save(ledger)
    click.echo(f"Added goal {created.title} ({created.id}).")


@goal.command("edit")
@click.argument("goal_id")
@click.option("--title", default=None)
@click.option("--target", type=float, default=None)
@click.option("--current", type=float, default=None)
@click.option("--periodic", type=float, default=None)
@click.pass_context
def goal_edit(
    ctx: click.Context,
    goal_id: str,
    title: Optional[str],
    target: Optional[float],
    current: Optional[float],
    periodic: Optional[float],
) -> None:
    """Change a goal's title or amounts."""

    ledger = _ledger(ctx)
    patch = GoalPatch(
        **_given(title=title, target_amount=target, current_amount=current, periodic_target=periodic)
    )
    try:
        updated = ledger.update_goal(goal_id, patch)
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    if updated is None:
        raise click.ClickException(f"No goal {goal_id}.")
    _report_save(ledger)
    click.echo(f"Updated goal {updated.title}.")


@goal.command("delete")
@click.argument("goal_id")
@click.pass_context
def goal_delete(ctx: click.Context, goal_id: str) -> None:
    """Delete a goal; money already deposited stays spent."""

    ledger = _ledger(ctx)
    if not ledger.delete_goal(goal_id):
        raise click.ClickException(f"No goal {goal_id}.")
    _report_save(ledger)
    click.echo(f"Deleted goal {goal_id}.")


@cli.group()
def source() -> None:
    """Manage money sources."""


@source.command("add")
@click.argument("name")
@click.option("--balance", type=float, default=0.0, show_default=True, help="Opening balance.")
@click.option("--kind", type=click.Choice([k.value for k in SourceKind], case_sensitive=False), default="OTHER")
@click.option("--color", "color_tag", default="")
@click.pass_context
def source_add(ctx: click.Context, name: str, balance: float, kind: str, color_tag: str) -> None:
    """Register a bank account, wallet, or other source."""

    ledger = _ledger(ctx)
    try:
        created = ledger.add_source(
            SourceInput(name=name, balance=balance, kind=SourceKind(kind.upper()), color_tag=color_tag)
        )
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    _report_save(ledger)
    click.echo(f"Added source {created.name} ({created.id}).")


@source.command("edit")
@click.argument("source_id")
@click.option("--name", default=None)
@click.option("--balance", type=float, default=None, help="Corrected balance, taken as given.")
@click.option("--kind", type=click.Choice([k.value for k in SourceKind], case_sensitive=False), default=None)
@click.option("--color", "color_tag", default=None)
@click.pass_context
def source_edit(
    ctx: click.Context,
    source_id: str,
    name: Optional[str],
    balance: Optional[float],
    kind: Optional[str],
    color_tag: Optional[str],
) -> None:
    """Rename or correct a source."""

    ledger = _ledger(ctx)
    patch = SourcePatch(
        **_given(
            name=name,
            balance=balance,
            kind=SourceKind(kind.upper()) if kind else None,
            color_tag=color_tag,
        )
    )
    try:
        updated = ledger.update_source(source_id, patch)
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    if updated is None:
        raise click.ClickException(f"No source {source_id}.")
    _report_save(ledger)
    click.echo(f"Updated source {updated.name}: {updated.balance:,.2f}")


@cli.group()
def category() -> None:
    """Manage spending categories."""


@category.command("list")
@click.pass_context
def category_list(ctx: click.Context) -> None:
    """Show every category id and name."""

    for item in _ledger(ctx).categories:
        click.echo(f"{item.id:<38} {item.icon} {item.name}")


@category.command("add")
@click.argument("name")
@click.option("--icon", default=None)
@click.option("--color", "color_tag", default=None)
@click.pass_context
def category_add(ctx: click.Context, name: str, icon: Optional[str], color_tag: Optional[str]) -> None:
    """Create a category."""

    ledger = _ledger(ctx)
    created = ledger.add_category(CategoryInput(name=name, **_given(icon=icon, color_tag=color_tag)))
    _report_save(ledger)
    click.echo(f"Added category {created.name} ({created.id}).")


@category.command("edit")
@click.argument("category_id")
@click.option("--name", default=None)
@click.option("--icon", default=None)
@click.option("--color", "color_tag", default=None)
@click.pass_context
def category_edit(
    ctx: click.Context,
    category_id: str,
    name: Optional[str],
    icon: Optional[str],
    color_tag: Optional[str],
) -> None:
    """Rename a category or change its icon."""

    ledger = _ledger(ctx)
    updated = ledger.update_category(category_id, CategoryPatch(**_given(name=name, icon=icon, color_tag=color_tag)))
    if updated is None:
        raise click.ClickException(f"No category {category_id}.")
    _report_save(ledger)
    click.echo(f"Updated category {updated.name}.")


@category.command("delete")
@click.argument("category_id")
@click.pass_context
def category_delete(ctx: click.Context, category_id: str) -> None:
    """Delete a category; its transactions show as Uncategorized."""

    ledger = _ledger(ctx)
    if not ledger.delete_category(category_id):
        raise click.ClickException(f"No category {category_id}.")
    _report_save(ledger)
    click.echo(f"Deleted category {category_id}.")


@cli.command()
@click.argument("goal_id")
@click.argument("amount", type=float)
@click.option("--source", "source_id", required=True, help="Source id to fund the deposit.")
@click.pass_context
def deposit(ctx: click.Context, goal_id: str, amount: float, source_id: str) -> None:
    """Move money from a source into a savings goal."""

    ledger = _ledger(ctx)
    try:
        result = ledger.deposit_to_goal(goal_id, amount, source_id)
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    if result is None:
        raise click.ClickException("Unknown goal or source.")
    _report_save(ledger)
    progress = goal_progress(result.goal)
    click.echo(f"{result.goal.title}: {result.goal.current_amount:,.2f} ({progress.percent:.0f}%)")
    if result.completed_now:
        click.echo("Goal reached!")


@cli.command()
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--start", type=click.DateTime(), default=None)
@click.option("--end", type=click.DateTime(), default=None)
@click.pass_context
def export(ctx: click.Context, output_dir: Path, start: Optional[datetime], end: Optional[datetime]) -> None:
    """Export transactions and a spending chart as a zip."""

    ledger = _ledger(ctx)
    path = run_export(
        ledger.snapshot(), output_dir, start=start, end=end, retention=_app(ctx).config.EXPORT_RETENTION
    )
    click.echo(f"Export written: {path}")


@cli.command()
@click.pass_context
def insights(ctx: click.Context) -> None:
    """Ask the Gemini model for a short spending insight."""

    ledger = _ledger(ctx)
    insight = asyncio.run(analyze_finances(ledger.snapshot(), config=_app(ctx).config))
    if insight is None:
        click.echo("No insight available.")
        return
    click.echo(insight.summary)
    click.echo(f"Trend: {insight.spending_trend}")
    click.echo(f"Tip: {insight.actionable_tip}")


@cli.command()
@click.option("--on/--off", "enabled", default=None, help="Enable or disable the daily reminder.")
@click.option("--time", "at", default=None, help="Reminder time as HH:MM.")
@click.pass_context
def reminder(ctx: click.Context, enabled: Optional[bool], at: Optional[str]) -> None:
    """Show or change the daily reminder preference."""

    app = _app(ctx)
    key = app.config.REMINDER_KEY
    settings = load_reminder_settings(app.storage, key=key)
    if enabled is not None or at is not None:
        changes = settings.model_dump()
        if enabled is not None:
            changes["enabled"] = enabled
        if at is not None:
            changes["time"] = at
        try:
            settings = ReminderSettings.model_validate(changes)
        except ValidationError as exc:
            raise click.ClickException(f"Invalid reminder time: {at}") from exc
        save_reminder_settings(app.storage, settings, key=key)
    state = "on" if settings.enabled else "off"
    click.echo(f"Daily reminder {state} at {settings.time}")


def main() -> None:  # pragma: no cover - console entry point
    cli()
