"""Ledger statement, reconciliation and purge commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.cli.resolution import resolve_or_exit
from famledger.domain.reconciler import BalanceReconciler
from famledger.utils.resolver import resolve_holder


def _reconciler(ctx) -> BalanceReconciler:
    return BalanceReconciler(ctx.obj["db"], box_baseline=ctx.obj["box_baseline"])


@click.command("statement")
@click.argument("holder", metavar="HOLDER")
@click.pass_context
def statement(ctx, holder: str):
    """Show the ledger of a bank account or box (newest first).

    Ends with a verification block comparing the cached balance with the
    one recomputed from the ledger.
    """
    holder_ref = resolve_or_exit(ctx, resolve_holder, holder)
    try:
        result = _reconciler(ctx).statement(holder_ref)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nStatement of {result.holder_name} ({holder_ref}):")
    click.echo("-" * 80)
    if not result.movements:
        click.echo("No movements found.")
    for m in result.movements:
        click.echo(
            f"{m.effective_date.isoformat()} | {m.kind.value:12s} | "
            f"{m.description[:35]:35s} | {m.amount:>10.2f}"
        )
    click.echo("-" * 80)
    click.echo(f"Cached balance:     {result.cached_balance:>12.2f}")
    click.echo(f"Recomputed balance: {result.recomputed:>12.2f}")
    if result.divergence:
        click.echo(f"Divergence:         {result.divergence:>12.2f}  (run 'famledger reconcile')")
    else:
        click.echo("Balances match.")


@click.command("reconcile")
@click.argument("holder", metavar="HOLDER", required=False)
@click.pass_context
def reconcile(ctx, holder: str | None):
    """Recompute cached balances from the ledger and fix drift.

    Reconciles HOLDER only, or every bank account and box when omitted.
    """
    reconciler = _reconciler(ctx)
    if holder is not None:
        holder_ref = resolve_or_exit(ctx, resolve_holder, holder)
        try:
            result = reconciler.reconcile(holder_ref)
        except ValueError as e:
            handle_domain_error(ctx, e)
        if result.corrected:
            click.echo(f"Corrected {result.line}")
        else:
            click.echo("No corrections needed.")
        return

    report = reconciler.reconcile_all()
    for line in report.lines():
        click.echo(line)
    if not report.lines():
        click.echo("No corrections needed.")
    if not report.success:
        ctx.exit(1)


@click.command("purge")
@click.confirmation_option(prompt="Delete ALL transactions, transfers and movements?")
@click.pass_context
def purge(ctx):
    """Delete all activity and reset balances to their baseline.

    Bank accounts, boxes, cards, classifications and templates are kept.
    """
    counts = _reconciler(ctx).purge()
    click.echo("Purged: " + ", ".join(f"{table} {count}" for table, count in counts.items()))


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(statement)
    cli.add_command(reconcile)
    cli.add_command(purge)
