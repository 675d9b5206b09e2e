"""Monthly summary command."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.domain.entities import SummaryGroupBy
from famledger.domain.summary import SummaryService


@click.command("summary")
@click.argument("year", type=int)
@click.option(
    "--by",
    "group_by",
    type=click.Choice([g.value for g in SummaryGroupBy]),
    default=SummaryGroupBy.ACCOUNT.value,
    show_default=True,
    help="Key rows by classification account or by its group",
)
@click.option("--month", type=click.IntRange(1, 12), help="Only this month")
@click.pass_context
def summary(ctx, year: int, group_by: str, month: int | None):
    """Show expected vs actual totals per month of YEAR.

    Examples:
        famledger summary 2025
        famledger summary 2025 --by group --month 3
    """
    try:
        report = SummaryService(ctx.obj["db"]).monthly_summary(year, SummaryGroupBy(group_by))
    except ValueError as e:
        handle_domain_error(ctx, e)

    rows = report.rows_for(month) if month else report.rows
    if not rows:
        click.echo("No transactions found.")
        return

    click.echo(f"\nSummary of {year} by {report.group_by.value}:")
    click.echo("-" * 80)
    click.echo(
        f"{'Month':7s} | {'Key':25s} | {'Type':7s} | {'Expected':>10s} | {'Actual':>10s} | {'Diff':>10s}"
    )
    for row in rows:
        click.echo(
            f"{row.year:04d}-{row.month:02d} | {row.key[:25]:25s} | {row.type.value:7s} | "
            f"{row.expected_total:>10.2f} | {row.actual_total:>10.2f} | {row.difference:>10.2f}"
        )


def register_commands(cli):
    """Register summary commands with main CLI."""
    cli.add_command(summary)
