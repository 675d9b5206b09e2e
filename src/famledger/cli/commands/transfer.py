"""Transfer commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.cli.resolution import amount_or_exit, date_or_exit, resolve_or_exit
from famledger.domain.ledger import LedgerService
from famledger.domain.transfer import TransferService
from famledger.utils.resolver import resolve_holder


@click.command("transfer")
@click.argument("source", metavar="SOURCE")
@click.argument("destination", metavar="DESTINATION")
@click.argument("amount", metavar="AMOUNT")
@click.option("--date", help="Date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.option("--description", default="", help="Description")
@click.pass_context
def transfer(ctx, source: str, destination: str, amount: str, date: str | None, description: str):
    """Move money between two holders.

    SOURCE and DESTINATION are account:<name-or-id>, box:<name-or-id> or a
    bare bank account name or ID.

    Examples:
        famledger transfer Checking box:Vacation 300
        famledger transfer account:Checking account:Savings 1000 --date 2025-01-10
    """
    db = ctx.obj["db"]
    source_ref = resolve_or_exit(ctx, resolve_holder, source)
    destination_ref = resolve_or_exit(ctx, resolve_holder, destination)
    value = amount_or_exit(ctx, amount)
    when = date_or_exit(ctx, date)

    try:
        result = TransferService(db, LedgerService(db, ctx.obj["box_baseline"])).transfer(
            source_ref, destination_ref, value, when, description=description
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Transferred {result.amount:.2f} from {source_ref} to {destination_ref} "
        f"({result.kind.value}, ID: {result.id})"
    )


def register_commands(cli):
    """Register transfer commands with main CLI."""
    cli.add_command(transfer)
