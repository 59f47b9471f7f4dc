"""Liquidity recommendation commands."""

import click

from treasury.cli.error_handling import handle_domain_error
from treasury.domain.errors import DomainError


def _echo_recommendations(recommendations) -> None:
    if not recommendations:
        click.echo("No active recommendations.")
        return
    for rec in recommendations:
        click.echo(
            f"{rec.id} | {rec.severity.value.upper():8s} | {rec.rec_type.value:8s} | "
            f"{rec.suggested_amount:>10.2f} by {rec.suggested_date.isoformat()} | {rec.title}"
        )
        click.echo(f"    {rec.description}")


@click.group()
def recommend_group():
    """Review liquidity recommendations."""
    pass


@recommend_group.command("regenerate")
@click.pass_context
def regenerate(ctx):
    """Recalculate balances and rebuild the recommendation set."""
    engine = ctx.obj["engine"]
    engine.refresh()
    _echo_recommendations(engine.get_active_recommendations())


@recommend_group.command("list")
@click.pass_context
def list_recommendations(ctx):
    """List active recommendations."""
    engine = ctx.obj["engine"]
    _echo_recommendations(engine.get_active_recommendations())


@recommend_group.command("dismiss")
@click.argument("recommendation_id")
@click.pass_context
def dismiss(ctx, recommendation_id: str):
    """Dismiss a recommendation."""
    engine = ctx.obj["engine"]

    try:
        engine.recommendations.dismiss(recommendation_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Dismissed recommendation {recommendation_id}")


def register_commands(cli):
    """Register recommendation commands with main CLI."""
    cli.add_command(recommend_group, name="recommend")
