"""Automation rule commands."""

import click

from treasury.cli.account_resolution import resolve_account_or_exit
from treasury.cli.error_handling import handle_domain_error
from treasury.domain.errors import DomainError


@click.group()
def rule_group():
    """Manage learned categorization rules."""
    pass


@rule_group.command("list")
@click.option("--account", help="Account ID, IBAN or name")
@click.pass_context
def list_rules(ctx, account: str | None):
    """List automation rules."""
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account) if account else None

    rules = engine.rules.list_rules(account_id=account_id)
    if not rules:
        click.echo("No rules found.")
        return

    for rule in rules:
        click.echo(
            f"{rule.id:4d} | acct {rule.account_id:3d} | {rule.category:20s} | "
            f"{rule.counterparty_pattern or '-'} / {rule.description_pattern or '-'} ({rule.amount_sign}) "
            f"| applied {rule.applied_count}x"
        )


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.pass_context
def delete_rule(ctx, rule_id: int):
    """Delete an automation rule."""
    engine = ctx.obj["engine"]

    try:
        engine.rules.delete_rule(rule_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Deleted rule {rule_id}")


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
