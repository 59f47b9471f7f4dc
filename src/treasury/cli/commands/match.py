"""Reconciliation commands."""

import click

from treasury.cli.error_handling import handle_domain_error
from treasury.domain.errors import DomainError


@click.group()
def match_group():
    """Match forecast events with bank movements."""
    pass


@match_group.command("candidates")
@click.pass_context
def list_candidates(ctx):
    """Show candidate matches, best first."""
    engine = ctx.obj["engine"]

    candidates = engine.get_candidate_matches()
    if not candidates:
        click.echo("No candidate matches.")
        return

    threshold = engine.matching.auto_accept_threshold
    for c in candidates:
        marker = "*" if c.score >= threshold else " "
        click.echo(
            f"{marker} score {c.score:.2f} | event {c.event.id:4d} {c.event.amount:>10.2f} "
            f"{c.event.predicted_date.isoformat()} | movement {c.movement.id:4d} "
            f"{c.movement.amount:>10.2f} {c.movement.date.isoformat()} | {c.reason}"
        )
    click.echo(f"\n* = at or above the auto-accept threshold ({threshold})")


@match_group.command("reconcile")
@click.argument("event_id", type=int)
@click.argument("movement_id", type=int)
@click.pass_context
def reconcile(ctx, event_id: int, movement_id: int):
    """Link a forecast event to the movement that settled it."""
    engine = ctx.obj["engine"]

    try:
        event = engine.matching.reconcile(event_id, movement_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Reconciled event {event.id} with movement {movement_id} ({event.actual_amount:.2f})")


@match_group.command("auto")
@click.pass_context
def auto_reconcile(ctx):
    """Reconcile every unambiguous high-confidence candidate."""
    engine = ctx.obj["engine"]

    result = engine.matching.auto_reconcile()
    click.echo(f"Reconciled: {len(result.reconciled)}")
    for c in result.reconciled:
        click.echo(f"  event {c.event.id} <-> movement {c.movement.id} (score {c.score:.2f})")
    click.echo(f"Pending review: {len(result.pending_review)}")


def register_commands(cli):
    """Register match commands with main CLI."""
    cli.add_command(match_group, name="match")
