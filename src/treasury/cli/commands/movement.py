"""Movement commands."""

import click

from treasury.cli.account_resolution import resolve_account_or_exit
from treasury.cli.date_filters import resolve_cli_date_range
from treasury.cli.error_handling import handle_domain_error
from treasury.domain.errors import DomainError
from treasury.utils.amount_parser import parse_amount
from treasury.utils.date_parser import parse_date


@click.group()
def movement_group():
    """Manage bank movements."""
    pass


@movement_group.command("add")
@click.option("--account", required=True, help="Account ID, IBAN or name")
@click.option("--date", "date_str", default="today", show_default=True, help="Operation date")
@click.option("--amount", required=True, help="Signed amount (negative for debits)")
@click.option("--description", required=True, help="Movement description")
@click.option("--counterparty", help="Counterparty name")
@click.option("--reference", help="Bank reference")
@click.option("--value-date", help="Value date (defaults to the operation date)")
@click.pass_context
def add_movement(
    ctx,
    account: str,
    date_str: str,
    amount: str,
    description: str,
    counterparty: str | None,
    reference: str | None,
    value_date: str | None,
):
    """Record a movement by hand.

    Examples:
        treasury movement add --account 1 --amount -120.50 --description "Office supplies"
        treasury movement add --account Reserve --date 2024-03-01 --amount 2000 --description "Capital"
    """
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account)

    try:
        movement_date = parse_date(date_str)
        parsed_value_date = parse_date(value_date) if value_date else None
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        movement_id = engine.movements.create_movement(
            account_id=account_id,
            date=movement_date,
            amount=parsed_amount,
            description=description,
            value_date=parsed_value_date,
            counterparty=counterparty,
            reference=reference,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    balance = engine.accounts.get_account(account_id).balance
    click.echo(f"Created movement {movement_id}. New balance: {balance:.2f}")


@movement_group.command("list")
@click.option("--account", help="Account ID, IBAN or name")
@click.option("--from", "start_date", help="First date (inclusive)")
@click.option("--to", "end_date", help="Last date (inclusive)")
@click.option(
    "--period",
    type=click.Choice(["this-month", "this-year", "last-month", "last-year"]),
    help="Named period instead of --from/--to",
)
@click.option("--unreconciled", is_flag=True, help="Only movements not matched to a forecast")
@click.pass_context
def list_movements(
    ctx,
    account: str | None,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    unreconciled: bool,
):
    """List movements."""
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account) if account else None
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)

    movements = engine.movements.list_movements(
        account_id=account_id,
        start_date=start,
        end_date=end,
        unreconciled_only=unreconciled,
    )
    if not movements:
        click.echo("No movements found.")
        return

    for m in movements:
        state = "R" if m.reconciliation_state.value == "reconciled" else " "
        category = f" [{m.category}]" if m.category else ""
        click.echo(
            f"{m.id:5d} {state} {m.date.isoformat()} | acct {m.account_id:3d} | "
            f"{m.amount:>12.2f} {m.currency} | {m.description[:40]}{category}"
        )


@movement_group.command("delete")
@click.argument("movement_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_movement(ctx, movement_id: int, yes: bool):
    """Delete an unreconciled movement."""
    engine = ctx.obj["engine"]

    if not yes and not click.confirm(f"Are you sure you want to delete movement {movement_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        engine.movements.delete_movement(movement_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Deleted movement {movement_id}")


@movement_group.command("categorize")
@click.argument("movement_id", type=int)
@click.argument("category")
@click.pass_context
def categorize_movement(ctx, movement_id: int, category: str):
    """Categorize a movement and learn a rule for similar ones.

    Examples:
        treasury movement categorize 42 Utilities
    """
    engine = ctx.obj["engine"]

    try:
        rule = engine.rules.learn_from_movement(movement_id, category)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Movement {movement_id} categorized as '{category}' (rule {rule.id})")


def register_commands(cli):
    """Register movement commands with main CLI."""
    cli.add_command(movement_group, name="movement")
