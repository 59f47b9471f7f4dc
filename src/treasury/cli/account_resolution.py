"""CLI helpers for account resolution and error handling."""

from __future__ import annotations

import click
from treasury.domain.account import AccountService
from treasury.domain.errors import DomainError
from treasury.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve account ID, IBAN or name, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_account(account_service, account)
    except DomainError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
