"""Main CLI entry point."""

import click

from famledger.config import (
    BOX_BASELINE_ENV,
    DB_PATH_ENV,
    LOG_LEVEL_ENV,
    parse_box_baseline,
    parse_log_level,
)
from famledger.database.factories import create_sqlite_database
from famledger.logging import setup_logging

# Import and register all commands at module level
from famledger.cli.commands import (
    holders,
    template,
    instance,
    invoice,
    transfer,
    ledger,
    projection,
    summary,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {DB_PATH_ENV} environment variable)",
    envvar=DB_PATH_ENV,
)
@click.option(
    "--box-baseline",
    type=click.Choice(["zero", "seeded"], case_sensitive=False),
    default="zero",
    show_default=True,
    help="Starting balance of boxes: always zero, or seeded from their initial value",
    envvar=BOX_BASELINE_ENV,
)
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    help="Log level (DEBUG, INFO, WARNING, ERROR)",
    envvar=LOG_LEVEL_ENV,
)
@click.pass_context
def cli(ctx, db_path: str | None, box_baseline: str, log_level: str):
    """Famledger - Family finance ledger.

    Track bank accounts, boxes and credit cards, expand budget templates
    into monthly transactions and project balances into the future.
    """
    ctx.ensure_object(dict)

    try:
        setup_logging(parse_log_level(log_level))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level")
    ctx.obj["box_baseline"] = parse_box_baseline(box_baseline)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None and "db" not in ctx.obj:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


# Register all commands
holders.register_commands(cli)
template.register_commands(cli)
instance.register_commands(cli)
invoice.register_commands(cli)
transfer.register_commands(cli)
ledger.register_commands(cli)
projection.register_commands(cli)
summary.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
