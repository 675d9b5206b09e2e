"""Balance projection command."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.cli.resolution import resolve_or_exit
from famledger.domain.ledger import LedgerService
from famledger.domain.projection import ProjectionEngine
from famledger.utils.resolver import resolve_holder


@click.command("project")
@click.argument("holder", metavar="HOLDER")
@click.option("--months", type=int, default=12, show_default=True, help="Months to project")
@click.option("--detail", is_flag=True, help="Show the entries of every month")
@click.pass_context
def project(ctx, holder: str, months: int, detail: bool):
    """Project the balance of a bank account or box.

    Examples:
        famledger project Checking --months 6
        famledger project box:Vacation --detail
    """
    db = ctx.obj["db"]
    holder_ref = resolve_or_exit(ctx, resolve_holder, holder)
    engine = ProjectionEngine(db, LedgerService(db, ctx.obj["box_baseline"]))
    try:
        projections = engine.project(holder_ref, months_ahead=months)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nProjection of {holder_ref}:")
    click.echo("-" * 75)
    click.echo(f"{'Month':7s} | {'Start':>12s} | {'Income':>10s} | {'Expense':>10s} | {'End':>12s}")
    for p in projections:
        click.echo(
            f"{p.label:7s} | {p.initial_balance:>12.2f} | {p.income:>10.2f} | "
            f"{p.expense:>10.2f} | {p.final_balance:>12.2f}"
        )
        if detail:
            for line in p.lines:
                click.echo(f"    {line.provenance.value:12s} {line.label[:35]:35s} {line.amount:>10.2f}")


def register_commands(cli):
    """Register projection commands with main CLI."""
    cli.add_command(project)
