"""Main CLI entry point."""

import click

from treasury.config import get_settings
from treasury.engine import TreasuryEngine
from treasury.logging_config import configure_logging

# Import and register all commands at module level
from treasury.cli.commands import (
    account,
    import_cmd,
    movement,
    forecast,
    match,
    projection,
    recommend,
    rule,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to ledger file (overrides TREASURY_DB_PATH environment variable)",
    envvar="TREASURY_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Treasury - Cash forecasting and bank reconciliation.

    Import bank statements, forecast payments from invoices, match them
    against real movements and get transfer suggestions before an account
    drops below its minimum balance.
    """
    ctx.ensure_object(dict)
    settings = get_settings()
    configure_logging(level="DEBUG" if verbose else settings.log_level, json_output=settings.log_json)

    # Open the ledger only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        engine = TreasuryEngine.from_settings(settings=settings, db_path=db_path)
        ctx.obj["engine"] = engine
        ctx.obj["db"] = engine.db
        ctx.call_on_close(engine.close)


# Register all commands
account.register_commands(cli)
import_cmd.register_commands(cli)
movement.register_commands(cli)
forecast.register_commands(cli)
match.register_commands(cli)
projection.register_commands(cli)
recommend.register_commands(cli)
rule.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
