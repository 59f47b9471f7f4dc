"""Account management commands."""

from decimal import Decimal

import click

from treasury.cli.account_resolution import resolve_account_or_exit
from treasury.cli.error_handling import handle_domain_error
from treasury.domain.errors import DomainError
from treasury.utils.amount_parser import parse_amount
from treasury.utils.date_parser import parse_date


def _parse_optional_amount(ctx, value: str | None, option: str) -> Decimal | None:
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {option}: {e}", err=True)
        ctx.exit(1)


@click.group()
def account_group():
    """Manage bank accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--iban", required=True, help="Account IBAN (spaces allowed)")
@click.option("--bank", help="Bank name (defaults to account name if not provided)")
@click.option("--opening-balance", default="0", show_default=True, help="Balance at the opening date")
@click.option("--opening-date", help="Opening balance date (defaults to today)")
@click.option("--minimum", help="Minimum balance to keep (defaults to the configured minimum)")
@click.pass_context
def create_account(
    ctx,
    name: str,
    iban: str,
    bank: str | None,
    opening_balance: str,
    opening_date: str | None,
    minimum: str | None,
):
    """Create a new account.

    Examples:
        treasury account create "Operations" --iban "ES91 2100 0418 4502 0005 1332" --bank CaixaBank
        treasury account create "Reserve" --iban GB82WEST12345698765432 --opening-balance 5000 --minimum 1000
    """
    engine = ctx.obj["engine"]
    bank_name = bank if bank is not None else name

    opening = _parse_optional_amount(ctx, opening_balance, "opening balance")
    minimum_balance = _parse_optional_amount(ctx, minimum, "minimum balance")
    opening_balance_date = None
    if opening_date:
        try:
            opening_balance_date = parse_date(opening_date)
        except ValueError as e:
            click.echo(f"Error: Invalid opening date: {e}", err=True)
            ctx.exit(1)

    try:
        account_id = engine.accounts.create_account(
            name=name,
            bank_name=bank_name,
            iban=iban,
            opening_balance=opening,
            opening_balance_date=opening_balance_date,
            minimum_balance=minimum_balance,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created account '{name}' (ID: {account_id})")
    if bank is None:
        click.echo(f"Bank name set to '{bank_name}'")


@account_group.command("list")
@click.option("--active-only", is_flag=True, help="Hide deactivated accounts")
@click.pass_context
def list_accounts(ctx, active_only: bool):
    """List accounts with their balances."""
    engine = ctx.obj["engine"]

    accounts = engine.accounts.list_accounts(include_inactive=not active_only)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 100)
    for acc in accounts:
        minimum = acc.minimum_balance if acc.minimum_balance is not None else engine.settings.default_minimum_balance
        flags = []
        if not acc.is_active:
            flags.append("inactive")
        if acc.is_at_risk:
            flags.append("AT RISK")
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.iban:34s} | "
            f"Balance: {acc.balance:>12.2f} {acc.currency} | Min: {minimum:>10.2f}"
            + (f" | {', '.join(flags)}" if flags else "")
        )


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--name", help="New account name")
@click.option("--bank", help="New bank name")
@click.option("--iban", help="New IBAN")
@click.option("--opening-balance", help="New opening balance")
@click.option("--opening-date", help="New opening balance date")
@click.option("--minimum", help="New minimum balance")
@click.pass_context
def update_account(
    ctx,
    account: str,
    name: str | None,
    bank: str | None,
    iban: str | None,
    opening_balance: str | None,
    opening_date: str | None,
    minimum: str | None,
) -> None:
    """Update an account.

    ACCOUNT can be an account ID, IBAN or name. Only the given fields change.

    Examples:
        treasury account update 1 --minimum 500
        treasury account update "Operations" --name "Operations EUR"
    """
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account)

    opening_balance_date = None
    if opening_date:
        try:
            opening_balance_date = parse_date(opening_date)
        except ValueError as e:
            click.echo(f"Error: Invalid opening date: {e}", err=True)
            ctx.exit(1)

    try:
        updated = engine.accounts.update_account(
            account_id,
            name=name,
            bank_name=bank,
            iban=iban,
            opening_balance=_parse_optional_amount(ctx, opening_balance, "opening balance"),
            opening_balance_date=opening_balance_date,
            minimum_balance=_parse_optional_amount(ctx, minimum, "minimum balance"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Updated account '{updated.name}' (ID: {account_id})")


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str) -> None:
    """Deactivate an account, keeping its movements."""
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account)

    try:
        engine.accounts.deactivate_account(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Deactivated account {account_id}")


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str) -> None:
    """Reactivate a deactivated account."""
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account)

    try:
        engine.accounts.activate_account(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Activated account {account_id}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--cascade", is_flag=True, help="Also delete the account's movements, rules and recommendations")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, cascade: bool, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account ID, IBAN or name.

    Without --cascade the account can only be deleted if it has no
    movements; deactivate it instead to keep its history.

    Examples:
        treasury account delete 3
        treasury account delete "Old savings" --cascade --yes
    """
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account)
    account_obj = engine.accounts.get_account(account_id)

    prompt = f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})"
    if cascade:
        prompt += " and all of its movements"
    if not yes and not click.confirm(prompt + "?"):
        click.echo("Deletion cancelled.")
        return

    try:
        if cascade:
            summary = engine.accounts.delete_account_cascade(account_id)
        else:
            engine.accounts.delete_account(account_id)
            summary = None
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Deleted account '{account_obj.name}'")
    if summary:
        click.echo(
            f"  Removed {summary['movements']} movements, {summary['rules']} rules, "
            f"{summary['recommendations']} recommendations; "
            f"unlinked {summary['forecast_events_unlinked']} forecast events"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
