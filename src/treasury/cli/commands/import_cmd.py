"""Statement import command."""

import click

from treasury.cli.account_resolution import resolve_account_or_exit
from treasury.cli.error_handling import handle_domain_error
from treasury.domain.errors import DomainError


@click.command("import")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Account ID, IBAN or name")
@click.option("--keep-duplicates", is_flag=True, help="Insert rows that match existing movements")
@click.option("--actor", default="cli", show_default=True, help="Recorded as the importing user")
@click.pass_context
def import_statement(ctx, statement_file: str, account: str, keep_duplicates: bool, actor: str):
    """Import movements from a CSV or XLSX bank statement.

    Examples:
        treasury import statement.csv --account 1
        treasury import movimientos.xlsx --account "ES91 2100 0418 4502 0005 1332"
    """
    engine = ctx.obj["engine"]
    account_id = resolve_account_or_exit(ctx, engine.accounts, account)

    try:
        result = engine.imports.import_file(
            statement_file,
            account_id=account_id,
            skip_duplicates=not keep_duplicates,
            actor=actor,
        )
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return

    click.echo("\nImport complete:")
    click.echo(f"  Batch: {result.batch_id}")
    click.echo(f"  Imported: {result.inserted} movements")
    click.echo(f"  Duplicates: {result.duplicates}")
    if result.categorized:
        click.echo(f"  Categorized by rules: {result.categorized}")
    click.echo(f"  Reconciled: {result.reconciled}")
    click.echo(f"  Pending review: {result.pending_review}")
    if result.errors:
        click.echo(f"  Errors: {len(result.errors)}")
        for error in result.errors:
            click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_statement)
