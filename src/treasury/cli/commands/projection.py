"""Balance projection command."""

import click

from treasury.cli.account_resolution import resolve_account_or_exit
from treasury.cli.error_handling import handle_domain_error
from treasury.domain.errors import DomainError


@click.command("projection")
@click.option("--days", type=int, help="Horizon in days (defaults to the configured horizon)")
@click.option("--account", "accounts", multiple=True, help="Account ID, IBAN or name (repeatable)")
@click.option("--events", "show_events", is_flag=True, help="Also list the forecast events counted")
@click.pass_context
def show_projection(ctx, days: int | None, accounts: tuple[str, ...], show_events: bool):
    """Show current and projected balances.

    Examples:
        treasury projection
        treasury projection --days 60 --account 1 --account 2 --events
    """
    engine = ctx.obj["engine"]
    account_ids = [resolve_account_or_exit(ctx, engine.accounts, a) for a in accounts] or None

    try:
        projection = engine.get_projections(days=days, account_ids=account_ids)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(
        f"\nProjection {projection.start_date.isoformat()} to {projection.end_date.isoformat()} "
        f"({projection.days} days)"
    )
    click.echo("=" * 90)
    if not projection.account_balances:
        click.echo("No active accounts.")
    for entry in projection.account_balances.values():
        warning = "  BELOW MINIMUM" if entry.is_below_minimum else ""
        click.echo(
            f"{entry.account.name:20s} | current {entry.current:>12.2f} | "
            f"projected {entry.projected:>12.2f} | min {entry.minimum_balance:>10.2f}{warning}"
        )
    click.echo("-" * 90)
    click.echo(f"Inflow:  {projection.total_inflow:>12.2f}")
    click.echo(f"Outflow: {projection.total_outflow:>12.2f}")
    click.echo(f"Net:     {projection.net_flow:>12.2f}")

    if show_events and projection.events:
        click.echo("\nEvents:")
        for event in projection.events:
            click.echo(
                f"  {event.predicted_date.isoformat()} {event.signed_amount:>12.2f}  {event.description}"
            )


def register_commands(cli):
    """Register projection command with main CLI."""
    cli.add_command(show_projection)
