"""Forecast event commands."""

import json

import click

from treasury.cli.account_resolution import resolve_account_or_exit
from treasury.cli.error_handling import handle_domain_error
from treasury.domain.entities import EventStatus
from treasury.domain.errors import DomainError
from treasury.domain.forecast import SourceDocument


def _load_document(ctx, document_file: str) -> SourceDocument:
    try:
        with open(document_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        click.echo(f"Error: {document_file} is not valid JSON: {e}", err=True)
        ctx.exit(1)
    if not isinstance(data, dict):
        click.echo("Error: The document file must contain a JSON object", err=True)
        ctx.exit(1)
    try:
        return SourceDocument.from_dict(data)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


def _describe_event(event) -> str:
    account = f"acct {event.account_id}" if event.account_id is not None else "no account"
    return (
        f"{event.id:5d} | {event.status.value:9s} | {event.predicted_date.isoformat()} | "
        f"{event.signed_amount:>12.2f} | {account:10s} | {event.description}"
    )


@click.group()
def forecast_group():
    """Manage forecast events from documents."""
    pass


@forecast_group.command("add")
@click.argument("document_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def add_forecast(ctx, document_file: str):
    """Create the forecast event for a document JSON file.

    The file holds the document's financial data, for example:

        {"id": "inv-2024-031", "filename": "invoice.pdf", "amount": "49.99",
         "due_date": "2024-03-10", "supplier": "Iberdrola",
         "iban": "ES91 2100 0418 4502 0005 1332"}
    """
    engine = ctx.obj["engine"]
    doc = _load_document(ctx, document_file)

    try:
        event = engine.create_forecast(doc)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if event is None:
        click.echo(f"Document '{doc.id}' produces no forecast event")
        return
    click.echo(f"Forecast event {event.id}: {event.description} on {event.predicted_date.isoformat()}")


@forecast_group.command("update")
@click.argument("document_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def update_forecast(ctx, document_file: str):
    """Sync the forecast event of a corrected document JSON file."""
    engine = ctx.obj["engine"]
    doc = _load_document(ctx, document_file)

    try:
        event = engine.update_forecast(doc)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if event is None:
        click.echo(f"Document '{doc.id}' produces no forecast event")
        return
    click.echo(f"Forecast event {event.id} ({event.status.value}): {event.amount:.2f} on {event.predicted_date.isoformat()}")


@forecast_group.command("list")
@click.option("--status", type=click.Choice([s.value for s in EventStatus]), help="Filter by status")
@click.option("--account", help="Account ID, IBAN or name")
@click.pass_context
def list_forecasts(ctx, status: str | None, account: str | None):
    """List forecast events."""
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account) if account else None

    events = engine.forecasts.list_events(status=status, account_id=account_id)
    if not events:
        click.echo("No forecast events found.")
        return

    for event in events:
        click.echo(_describe_event(event))


def register_commands(cli):
    """Register forecast commands with main CLI."""
    cli.add_command(forecast_group, name="forecast")
